"""Backend build invocation."""

from __future__ import annotations

from pathlib import Path

from bootstitch.config import MavenConfig
from bootstitch.utils import Stage, run_tool


class MavenRunner:
    """Runs the configured Maven goals in the backend module."""

    def __init__(self, config: MavenConfig | None = None) -> None:
        self.config = config or MavenConfig()

    def command(self) -> list[str]:
        return [self.config.command, *self.config.goals]

    async def build(self, backend_dir: Path) -> str:
        """Build the backend; a non-zero exit raises ``ExternalToolFailure``.

        Returns:
            The captured build output.
        """
        return await run_tool(
            self.command(),
            stage=Stage.BUILD_BACKEND,
            description=f"Running {' '.join(self.command())} in {backend_dir.name}",
            cwd=backend_dir,
            timeout=self.config.timeout,
        )

    @staticmethod
    def artifacts(backend_dir: Path) -> list[Path]:
        """Packaged jar/war files under ``target/``, excluding ``*.original``."""
        target = backend_dir / "target"
        if not target.is_dir():
            return []
        return sorted(
            path for path in target.iterdir()
            if path.suffix in (".jar", ".war")
        )
