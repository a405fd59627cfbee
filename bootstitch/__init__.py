"""bootstitch: generate a Spring Boot backend and a Vite frontend that build into one artifact."""

__version__ = "0.1.0"
