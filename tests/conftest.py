"""Shared pytest fixtures for the bootstitch test suite.

Provides reusable fixtures for:
- Backend build descriptors (a real Spring Initializr POM and minimal POMs)
- Merge configuration
- Spring Initializr metadata payloads and starter archives
- Mock subprocess helpers
"""

from __future__ import annotations

import io
import textwrap
import zipfile
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from bootstitch.descriptor import MergeConfig

POM_NS = "http://maven.apache.org/POM/4.0.0"


# ---------------------------------------------------------------------------
# Build descriptors
# ---------------------------------------------------------------------------

INITIALIZR_POM = """\
<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
	xsi:schemaLocation="http://maven.apache.org/POM/4.0.0 https://maven.apache.org/xsd/maven-4.0.0.xsd">
	<modelVersion>4.0.0</modelVersion>
	<parent>
		<groupId>org.springframework.boot</groupId>
		<artifactId>spring-boot-starter-parent</artifactId>
		<version>3.3.4</version>
		<relativePath/> <!-- lookup parent from repository -->
	</parent>
	<groupId>com.example</groupId>
	<artifactId>shop</artifactId>
	<version>0.0.1-SNAPSHOT</version>
	<name>shop</name>
	<description>Demo project for Spring Boot</description>
	<properties>
		<java.version>21</java.version>
	</properties>
	<dependencies>
		<dependency>
			<groupId>org.springframework.boot</groupId>
			<artifactId>spring-boot-starter-web</artifactId>
		</dependency>

		<dependency>
			<groupId>org.springframework.boot</groupId>
			<artifactId>spring-boot-starter-test</artifactId>
			<scope>test</scope>
		</dependency>
	</dependencies>

	<build>
		<plugins>
			<plugin>
				<groupId>org.springframework.boot</groupId>
				<artifactId>spring-boot-maven-plugin</artifactId>
			</plugin>
		</plugins>
	</build>

</project>
"""

MINIMAL_POM = textwrap.dedent("""\
    <project>
        <modelVersion>4.0.0</modelVersion>
        <parent>
            <groupId>org.springframework.boot</groupId>
            <artifactId>spring-boot-starter-parent</artifactId>
            <version>3.3.4</version>
        </parent>
        <groupId>com.example</groupId>
        <artifactId>demo</artifactId>
    </project>
""")


@pytest.fixture
def initializr_pom() -> str:
    """A ``pom.xml`` as generated by Spring Initializr for a jar project."""
    return INITIALIZR_POM


@pytest.fixture
def minimal_pom() -> str:
    """Identifier ``demo``; no packaging, no properties, no build block."""
    return MINIMAL_POM


@pytest.fixture
def merge_config() -> MergeConfig:
    return MergeConfig(
        artifact_id="shop",
        packaging="war",
        language_version="17",
        frontend_asset_relative_path="shop-frontend/dist",
    )


# ---------------------------------------------------------------------------
# Spring Initializr
# ---------------------------------------------------------------------------

@pytest.fixture
def initializr_metadata() -> dict[str, Any]:
    """Trimmed ``/metadata/client`` payload."""
    return {
        "bootVersion": {
            "type": "single-select",
            "default": "3.3.4.RELEASE",
            "values": [
                {"id": "3.4.0-SNAPSHOT", "name": "3.4.0 (SNAPSHOT)"},
                {"id": "3.3.5.BUILD-SNAPSHOT", "name": "3.3.5 (SNAPSHOT)"},
                {"id": "3.3.4.RELEASE", "name": "3.3.4"},
                {"id": "3.2.10.RELEASE", "name": "3.2.10"},
            ],
        },
        "javaVersion": {
            "type": "single-select",
            "default": "17",
            "values": [
                {"id": "23", "name": "23"},
                {"id": "21", "name": "21"},
                {"id": "17", "name": "17"},
            ],
        },
        "packaging": {
            "type": "single-select",
            "default": "jar",
            "values": [{"id": "jar", "name": "Jar"}, {"id": "war", "name": "War"}],
        },
    }


def _build_starter_zip(pom: str, prefix: str = "") -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(f"{prefix}pom.xml", pom)
        archive.writestr(f"{prefix}mvnw", "#!/bin/sh\necho mvnw\n")
        archive.writestr(
            f"{prefix}src/main/java/com/example/shop/ShopApplication.java",
            "package com.example.shop;\n",
        )
    return buffer.getvalue()


@pytest.fixture
def make_starter_zip():
    """Factory building an in-memory starter archive.

    Usage:
        archive = make_starter_zip(pom_text, prefix="shop/")
    """
    return _build_starter_zip


@pytest.fixture
def starter_zip(initializr_pom: str) -> bytes:
    """A starter archive with the project at the archive root."""
    return _build_starter_zip(initializr_pom)


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
