"""Frontend scaffolding via the Vite ``create`` CLI.

Creates the frontend project next to the backend, installs its dependencies
and builds it so that the compiled assets exist before the backend build
copies them.
"""

from __future__ import annotations

from pathlib import Path

from bootstitch.config import FrontendConfig
from bootstitch.errors import ExternalToolFailure
from bootstitch.utils import Stage, run_tool


class FrontendScaffolder:
    """Drives ``npm`` to create and build the frontend project."""

    def __init__(self, config: FrontendConfig | None = None) -> None:
        self.config = config or FrontendConfig()

    def create_command(self, target: Path) -> list[str]:
        return [
            self.config.npm,
            "create",
            self.config.create_package,
            str(target),
            "--",
            "--template",
            self.config.template,
        ]

    async def scaffold(self, target: Path) -> Path:
        """Create the frontend project in *target*.

        Returns:
            The project directory.
        """
        await run_tool(
            self.create_command(target),
            stage=Stage.SCAFFOLD_FRONTEND,
            description=f"Creating {self.config.template} project in {target.name}",
            timeout=self.config.timeout,
        )
        if not (target / "package.json").is_file():
            raise ExternalToolFailure(
                Stage.SCAFFOLD_FRONTEND,
                f"Frontend scaffolding produced no package.json in {target}",
            )
        return target

    async def build(self, project_dir: Path) -> Path:
        """Install dependencies and build the frontend.

        Returns:
            The compiled assets directory.
        """
        await run_tool(
            [self.config.npm, "install"],
            stage=Stage.BUILD_FRONTEND,
            description="Installing frontend dependencies",
            cwd=project_dir,
            timeout=self.config.timeout,
        )
        await run_tool(
            [self.config.npm, "run", "build"],
            stage=Stage.BUILD_FRONTEND,
            description="Building frontend",
            cwd=project_dir,
            timeout=self.config.timeout,
        )

        dist = project_dir / self.config.dist_dir
        if not dist.is_dir():
            raise ExternalToolFailure(
                Stage.BUILD_FRONTEND,
                f"Frontend build produced no {self.config.dist_dir}/ directory",
            )
        return dist
