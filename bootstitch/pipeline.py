"""bootstitch pipeline orchestrator.

Generates a Spring Boot backend and a Vite frontend and stitches them into a
single deployable artifact:

Stage 1: PROMPTING          -- Collect project parameters.
Stage 2: FETCH BACKEND      -- Download and extract the Spring Initializr skeleton.
Stage 3: SCAFFOLD FRONTEND  -- ``npm create vite`` next to the backend.
Stage 4: BUILD FRONTEND     -- ``npm install`` and ``npm run build``.
Stage 5: MERGE DESCRIPTOR   -- Write the parent POM and merge the backend POM.
Stage 6: BUILD BACKEND      -- ``mvn clean install`` in the backend module.

Stages run strictly in order and the first failure aborts the run.

Usage::

    python -m bootstitch.pipeline
    python -m bootstitch.pipeline --artifact-id shop --packaging war --no-input
"""

from __future__ import annotations

import asyncio
import sys
import time
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.markup import escape
from rich.panel import Panel

from bootstitch.config import Config, project_overrides_from_env
from bootstitch.descriptor import MergeConfig, TemplateRenderer, merge_descriptor_file
from bootstitch.errors import (
    BootstitchError,
    ExternalToolFailure,
    FilesystemConflict,
    ParameterError,
)
from bootstitch.frontend import FrontendScaffolder
from bootstitch.initializr import InitializrClient
from bootstitch.maven import MavenRunner
from bootstitch.prompts import PACKAGING_CHOICES, collect_parameters, needs_metadata
from bootstitch.utils import (
    STAGE_COLORS,
    STAGE_ORDER,
    Stage,
    console,
    format_duration,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_tool_output,
    print_warning,
)


class Pipeline:
    """Sequential generation pipeline.

    Attributes:
        config: Run configuration; ``config.project`` is replaced by the
            collected parameters during the prompting stage.
        overrides: Project parameters fixed before the run started.
        stage: The stage currently executing, or ``DONE`` / ``FAILED``.
        state: Results accumulated from each stage.
    """

    _STAGE_METHODS: dict[Stage, str] = {
        Stage.PROMPTING: "stage_prompting",
        Stage.FETCH_BACKEND: "stage_fetch_backend",
        Stage.SCAFFOLD_FRONTEND: "stage_scaffold_frontend",
        Stage.BUILD_FRONTEND: "stage_build_frontend",
        Stage.MERGE_DESCRIPTOR: "stage_merge_descriptor",
        Stage.BUILD_BACKEND: "stage_build_backend",
    }

    def __init__(
        self,
        config: Config,
        overrides: dict[str, Any] | None = None,
        *,
        initializr: InitializrClient | None = None,
        frontend: FrontendScaffolder | None = None,
        maven: MavenRunner | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.overrides = dict(overrides or {})
        self.initializr = initializr or InitializrClient(config.initializr)
        self.frontend = frontend or FrontendScaffolder(config.frontend)
        self.maven = maven or MavenRunner(config.maven)
        self.renderer = renderer or TemplateRenderer()
        self.stage = Stage.PROMPTING
        self.state: dict[str, Any] = {
            "started_at": datetime.now(timezone.utc).isoformat(),
            "stages_completed": [],
            "failed_stage": None,
            "success": False,
        }

    # ------------------------------------------------------------------
    # Stage dispatch
    # ------------------------------------------------------------------

    async def run(self) -> dict[str, Any]:
        """Execute every stage in order, stopping at the first failure.

        Returns:
            The final state dictionary, including a top-level ``success``
            boolean.
        """
        pipeline_start = time.monotonic()

        console.print(
            Panel(
                "[bold bright_cyan]bootstitch[/bold bright_cyan]\n"
                f"Output     : {self.config.output_dir.resolve()}\n"
                f"Initializr : {self.config.initializr.url}",
                title="[bold]Generation Start[/bold]",
                border_style="bright_cyan",
            )
        )

        for number, stage in enumerate(STAGE_ORDER, start=1):
            if stage is Stage.BUILD_BACKEND and self.config.skip_backend_build:
                print_warning("Skipping backend build (--skip-build).")
                continue

            self.stage = stage
            print_stage_header(number, stage.label, STAGE_COLORS[stage])
            stage_start = time.monotonic()

            try:
                result = await getattr(self, self._STAGE_METHODS[stage])()
            except BootstitchError as exc:
                self._record_failure(number, stage, exc, time.monotonic() - stage_start)
                if isinstance(exc, ExternalToolFailure):
                    print_tool_output(exc.output, title=f"{stage.label} output")
                break
            except Exception as exc:
                self._record_failure(number, stage, exc, time.monotonic() - stage_start)
                console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
                break

            self.state[stage.value] = result
            self.state["stages_completed"].append(stage.value)
            print_success(
                f"Stage {number} ({stage.label}) completed in "
                f"{format_duration(time.monotonic() - stage_start)}"
            )
        else:
            self.stage = Stage.DONE
            self.state["success"] = True

        total_elapsed = time.monotonic() - pipeline_start
        self.state["total_duration"] = format_duration(total_elapsed)
        self.state["finished_at"] = datetime.now(timezone.utc).isoformat()

        self._print_final_summary()
        return self.state

    def _record_failure(self, number: int, stage: Stage, exc: Exception, elapsed: float) -> None:
        self.stage = Stage.FAILED
        self.state["failed_stage"] = stage.value
        self.state["error"] = str(exc)
        print_error(
            f"Stage {number} ({stage.label}) FAILED after "
            f"{format_duration(elapsed)}: {escape(str(exc))}"
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def stage_prompting(self) -> dict[str, Any]:
        """Collect parameters and make sure the target folders are free."""
        metadata = None
        if needs_metadata(self.overrides, self.config.interactive):
            console.print("  Fetching Spring Boot metadata...")
            metadata = await self.initializr.fetch_metadata(Stage.PROMPTING)

        params = collect_parameters(
            self.overrides, metadata, interactive=self.config.interactive
        )
        self.config.project = params
        self._check_targets()

        return params.model_dump()

    async def stage_fetch_backend(self) -> dict[str, Any]:
        params = self.config.project
        console.print(
            f"  Generating backend [bold]{params.backend_folder}[/bold] "
            f"with Spring Boot {params.boot_version or '(Initializr default)'}..."
        )
        descriptor = await self.initializr.download_starter(params, self.config.backend_path)
        return {"backend_path": str(self.config.backend_path), "descriptor": str(descriptor)}

    async def stage_scaffold_frontend(self) -> dict[str, Any]:
        console.print(
            f"  Generating frontend [bold]{self.config.project.frontend_folder}[/bold]..."
        )
        project_dir = await self.frontend.scaffold(self.config.frontend_path)
        return {"frontend_path": str(project_dir)}

    async def stage_build_frontend(self) -> dict[str, Any]:
        dist = await self.frontend.build(self.config.frontend_path)
        return {"dist_path": str(dist)}

    async def stage_merge_descriptor(self) -> dict[str, Any]:
        """Write the parent POM, then merge the backend POM in place."""
        params = self.config.project

        console.print("  Writing parent pom.xml...")
        parent_pom = await self.renderer.render_parent_pom(
            self.config.parent_pom_path,
            group_id=params.group_id,
            parent_artifact_id=params.parent_artifact_id,
            modules=[params.backend_folder],
        )

        console.print(f"  Merging {params.backend_folder}/pom.xml...")
        merge_config = MergeConfig(
            artifact_id=params.artifact_id,
            packaging=params.packaging,
            language_version=params.java_version,
            frontend_asset_relative_path=self.config.frontend_asset_relative_path,
        )
        backend_pom = await asyncio.to_thread(
            merge_descriptor_file, self.config.backend_pom_path, merge_config
        )
        return {"parent_pom": str(parent_pom), "backend_pom": str(backend_pom)}

    async def stage_build_backend(self) -> dict[str, Any]:
        console.print("  Running Maven build for backend module...")
        await self.maven.build(self.config.backend_path)
        artifacts = MavenRunner.artifacts(self.config.backend_path)
        return {"artifacts": [str(path) for path in artifacts]}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_targets(self) -> None:
        """Raise ``FilesystemConflict`` unless the generated folders can be created."""
        root = self.config.root_path
        if root.exists() and not root.is_dir():
            raise FilesystemConflict(f"{root} exists and is not a directory")

        for target in (self.config.backend_path, self.config.frontend_path):
            if target.exists():
                raise FilesystemConflict(
                    f"{target} already exists; remove it or choose another artifact id"
                )

        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemConflict(f"Cannot create {root}: {exc}") from exc

    def _print_final_summary(self) -> None:
        params = self.config.project
        print_summary_table(
            {
                "Project root": str(self.config.root_path),
                "Backend": params.backend_folder,
                "Frontend": params.frontend_folder,
                "Packaging": params.packaging,
                "Stages completed": str(len(self.state["stages_completed"])),
                "Total time": self.state.get("total_duration", "?"),
            },
            title="Generation Summary",
        )

        if self.state["success"]:
            if self.config.skip_backend_build:
                maven = self.config.maven
                next_step = (
                    f"Build: cd {params.backend_folder} && "
                    f"{' '.join([maven.command, *maven.goals])}"
                )
            else:
                next_step = f"Run: java -jar {params.backend_folder}/target/*.{params.packaging}"
            console.print(
                Panel(
                    "[bold green]Project generation complete![/bold green]\n" + escape(next_step),
                    border_style="green",
                )
            )
        else:
            console.print(
                Panel(
                    f"[bold red]Generation failed at stage "
                    f"{self.state['failed_stage']}.[/bold red]\n"
                    "Remove the partially generated folders and run again.",
                    border_style="red",
                )
            )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``bootstitch`` / ``python -m bootstitch.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="bootstitch -- Spring Boot + Vite single-artifact project generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  bootstitch\n"
            "  bootstitch --artifact-id shop --packaging war --no-input\n"
            "  bootstitch -o ~/work --group-id org.acme --skip-build\n"
        ),
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Directory in which the project folder is created (default: .)",
    )
    parser.add_argument("--group-id", default=None, help="Java group id")
    parser.add_argument("--artifact-id", default=None, help="Base artifact id (project name)")
    parser.add_argument("--boot-version", default=None, help="Spring Boot version")
    parser.add_argument("--java-version", default=None, help="Java version")
    parser.add_argument(
        "--packaging", default=None, choices=PACKAGING_CHOICES, help="Packaging type"
    )
    parser.add_argument("--initializr-url", default=None, help="Spring Initializr base URL")
    parser.add_argument(
        "--no-input",
        action="store_true",
        help="Never prompt; use defaults for anything not given",
    )
    parser.add_argument(
        "--skip-build",
        action="store_true",
        help="Do not run the Maven build after merging",
    )

    args = parser.parse_args(argv)

    try:
        config = Config.from_env()
    except ParameterError as exc:
        print_error(escape(str(exc)))
        sys.exit(1)
    if args.output:
        config.output_dir = Path(args.output)
    if args.initializr_url:
        config.initializr.url = args.initializr_url
    config.interactive = not args.no_input and sys.stdin.isatty()
    config.skip_backend_build = args.skip_build

    overrides: dict[str, Any] = project_overrides_from_env()
    for field_name in ("group_id", "artifact_id", "boot_version", "java_version", "packaging"):
        value = getattr(args, field_name)
        if value is not None:
            overrides[field_name] = value

    pipeline = Pipeline(config, overrides)
    try:
        result = asyncio.run(pipeline.run())
    except KeyboardInterrupt:
        console.print("[bold red]Aborted.[/bold red]")
        sys.exit(130)

    if not result.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
