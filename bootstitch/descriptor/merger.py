"""Backend build descriptor merger.

Rewrites the ``pom.xml`` of a freshly generated Spring Boot backend so that
its build embeds the compiled frontend:

1. the project ``<artifactId>`` becomes ``<artifact_id>-backend`` (the
   ``spring-boot-starter-parent`` reference is left alone),
2. ``<packaging>`` is set, or inserted after ``<modelVersion>``,
3. ``<properties>/<java.version>`` is set, or a ``<properties>`` block is
   inserted before ``<parent>``,
4. a ``maven-resources-plugin`` execution with id ``copy-frontend`` copies
   the frontend build output into ``target/classes/static``.

Every step is idempotent: merging an already merged document yields the same
document. Edits go through ``xml.etree.ElementTree`` so that they target
elements rather than text; comments, the prolog and the default namespace
survive, and inserted elements are indented like their siblings.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from pathlib import Path

from pydantic import BaseModel, Field

from bootstitch.config import ARTIFACT_ID_PATTERN, Packaging
from bootstitch.errors import MalformedDescriptor

PARENT_ARTIFACT_ID = "spring-boot-starter-parent"
RESOURCES_PLUGIN_ARTIFACT_ID = "maven-resources-plugin"
COPY_FRONTEND_EXECUTION_ID = "copy-frontend"
STATIC_OUTPUT_DIRECTORY = "${project.build.directory}/classes/static"

DEFAULT_INDENT = "    "

# Leading declaration, processing instructions, comments and doctype.
_PROLOG_RE = re.compile(r"\ufeff?(?:\s+|<\?.*?\?>|<!--.*?-->|<!DOCTYPE[^>]*>)*", re.S)


class MergeConfig(BaseModel):
    """Target configuration applied to a backend descriptor."""

    artifact_id: str = Field(..., pattern=ARTIFACT_ID_PATTERN)
    packaging: Packaging = Field(default="jar")
    language_version: str = Field(..., min_length=1)
    frontend_asset_relative_path: str = Field(
        ...,
        min_length=1,
        description="Compiled frontend directory relative to the generated root",
    )

    @property
    def backend_artifact_id(self) -> str:
        return f"{self.artifact_id}-backend"

    @property
    def frontend_asset_directory(self) -> str:
        """Frontend output as seen from the backend module's base directory."""
        return "${project.basedir}/../" + self.frontend_asset_relative_path.strip("/")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def merge(document: str, config: MergeConfig) -> str:
    """Apply *config* to the descriptor text and return the merged text.

    Pure function: no I/O.

    Raises:
        MalformedDescriptor: If the document is not well-formed XML, its
            root is not ``<project>``, or it declares no project
            ``<artifactId>``.
    """
    pom = _PomDocument.parse(document)
    pom.rename_identifier(config.backend_artifact_id)
    pom.set_packaging(config.packaging)
    pom.set_java_version(config.language_version)
    pom.upsert_copy_frontend(config.frontend_asset_directory)
    return pom.serialize()


def merge_descriptor_file(path: str | Path, config: MergeConfig) -> Path:
    """Merge the descriptor at *path* in place.

    The file is only rewritten when the merge succeeds.
    """
    descriptor = Path(path)
    if not descriptor.is_file():
        raise MalformedDescriptor(f"Build descriptor not found: {descriptor}")
    merged = merge(descriptor.read_text(encoding="utf-8"), config)
    descriptor.write_text(merged, encoding="utf-8")
    return descriptor


# ---------------------------------------------------------------------------
# Document wrapper
# ---------------------------------------------------------------------------


class _PomDocument:
    """A parsed POM plus the formatting details needed to write it back."""

    def __init__(self, root: ET.Element, namespace: str, prolog: str, epilog: str) -> None:
        self.root = root
        self.namespace = namespace
        self.prolog = prolog
        self.epilog = epilog
        self.indent = _detect_indent(root)

    @classmethod
    def parse(cls, document: str) -> "_PomDocument":
        parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
        try:
            root = ET.fromstring(document, parser=parser)
        except ET.ParseError as exc:
            raise MalformedDescriptor(f"Build descriptor is not well-formed XML: {exc}") from exc

        namespace, local_name = _split_tag(root.tag)
        if local_name != "project":
            raise MalformedDescriptor(
                f"Build descriptor root must be <project>, found <{local_name}>"
            )

        prolog = document[: _PROLOG_RE.match(document).end()]
        epilog = "\n" if document.endswith("\n") else ""
        return cls(root, namespace, prolog, epilog)

    def serialize(self) -> str:
        self.root.tail = None
        if not self.namespace:
            body = ET.tostring(self.root, encoding="unicode")
        else:
            try:
                body = ET.tostring(
                    self.root, encoding="unicode", default_namespace=self.namespace
                )
            except ValueError:
                # default_namespace rejects unprefixed attributes such as
                # combine.children; declare the namespace as a plain attribute.
                body = ET.tostring(self._inline_namespace(), encoding="unicode")
        return f"{self.prolog}{body}{self.epilog}"

    def _inline_namespace(self) -> ET.Element:
        prefix = f"{{{self.namespace}}}"
        for element in self.root.iter():
            if isinstance(element.tag, str) and element.tag.startswith(prefix):
                element.tag = element.tag[len(prefix):]
        attributes = {"xmlns": self.namespace, **self.root.attrib}
        self.root.attrib.clear()
        self.root.attrib.update(attributes)
        return self.root

    # -- Merge steps -------------------------------------------------------

    def rename_identifier(self, artifact_id: str) -> None:
        self.project_identifier().text = artifact_id

    def set_packaging(self, packaging: str) -> None:
        existing = self.root.find(self._q("packaging"))
        if existing is not None:
            existing.text = packaging
            return

        anchor = self.root.find(self._q("modelVersion"))
        if anchor is None:
            anchor = self.project_identifier()
        index = list(self.root).index(anchor) + 1
        self._insert(self.root, index, self._element("packaging", packaging), depth=1)

    def set_java_version(self, version: str) -> None:
        properties = self.root.find(self._q("properties"))
        if properties is not None:
            existing = properties.find(self._q("java.version"))
            if existing is not None:
                existing.text = version
            else:
                self._insert(
                    properties,
                    len(properties),
                    self._element("java.version", version),
                    depth=2,
                )
            return

        properties = self._element("properties")
        properties.append(self._element("java.version", version))

        parent = self.root.find(self._q("parent"))
        if parent is not None:
            index = list(self.root).index(parent)
        else:
            index = list(self.root).index(self.root.find(self._q("packaging"))) + 1
        self._insert(self.root, index, properties, depth=1)

    def upsert_copy_frontend(self, asset_directory: str) -> None:
        execution = self._copy_frontend_execution(asset_directory)

        build = self.root.find(self._q("build"))
        if build is None:
            build = self._element("build")
            plugins = self._sub(build, "plugins")
            plugins.append(self._resources_plugin(execution))
            self._insert(self.root, len(self.root), build, depth=1)
            return

        plugins = build.find(self._q("plugins"))
        if plugins is None:
            plugins = self._element("plugins")
            plugins.append(self._resources_plugin(execution))
            self._insert(build, len(build), plugins, depth=2)
            return

        for plugin in plugins.findall(self._q("plugin")):
            executions = plugin.find(self._q("executions"))
            if executions is None:
                continue
            for index, existing in enumerate(list(executions)):
                if existing.tag == self._q("execution") and self._child_text(
                    existing, "id"
                ) == COPY_FRONTEND_EXECUTION_ID:
                    self._replace(executions, index, execution, depth=5)
                    return

        for plugin in plugins.findall(self._q("plugin")):
            if self._child_text(plugin, "artifactId") != RESOURCES_PLUGIN_ARTIFACT_ID:
                continue
            executions = plugin.find(self._q("executions"))
            if executions is None:
                executions = self._element("executions")
                executions.append(execution)
                self._insert(plugin, len(plugin), executions, depth=4)
            else:
                self._insert(executions, len(executions), execution, depth=5)
            return

        self._insert(plugins, 0, self._resources_plugin(execution), depth=3)

    # -- Lookups -----------------------------------------------------------

    def project_identifier(self) -> ET.Element:
        """Return the project's own top-level ``<artifactId>`` element."""
        for element in self.root.findall(self._q("artifactId")):
            if (element.text or "").strip() != PARENT_ARTIFACT_ID:
                return element
        raise MalformedDescriptor("Build descriptor declares no project <artifactId>")

    def _child_text(self, element: ET.Element, tag: str) -> str:
        child = element.find(self._q(tag))
        if child is None or child.text is None:
            return ""
        return child.text.strip()

    # -- Element construction ----------------------------------------------

    def _q(self, tag: str) -> str:
        """Qualify *tag* with the document namespace, if any."""
        return f"{{{self.namespace}}}{tag}" if self.namespace else tag

    def _element(self, tag: str, text: str | None = None) -> ET.Element:
        element = ET.Element(self._q(tag))
        element.text = text
        return element

    def _sub(self, parent: ET.Element, tag: str, text: str | None = None) -> ET.Element:
        element = ET.SubElement(parent, self._q(tag))
        element.text = text
        return element

    def _resources_plugin(self, execution: ET.Element) -> ET.Element:
        plugin = self._element("plugin")
        self._sub(plugin, "artifactId", RESOURCES_PLUGIN_ARTIFACT_ID)
        executions = self._sub(plugin, "executions")
        executions.append(execution)
        return plugin

    def _copy_frontend_execution(self, asset_directory: str) -> ET.Element:
        execution = self._element("execution")
        self._sub(execution, "id", COPY_FRONTEND_EXECUTION_ID)
        self._sub(execution, "phase", "process-resources")
        goals = self._sub(execution, "goals")
        self._sub(goals, "goal", "copy-resources")
        configuration = self._sub(execution, "configuration")
        self._sub(configuration, "outputDirectory", STATIC_OUTPUT_DIRECTORY)
        resources = self._sub(configuration, "resources")
        resource = self._sub(resources, "resource")
        self._sub(resource, "directory", asset_directory)
        includes = self._sub(resource, "includes")
        self._sub(includes, "include", "**/*")
        return execution

    # -- Whitespace-aware tree edits ---------------------------------------

    def _insert(self, parent: ET.Element, index: int, child: ET.Element, depth: int) -> None:
        """Insert *child* at *index*, indenting it for nesting level *depth*.

        ``depth`` is the level of *child* itself; direct children of
        ``<project>`` are at level 1.
        """
        if self.indent is None:
            parent.insert(index, child)
            return

        ET.indent(child, space=self.indent, level=depth)
        siblings = list(parent)
        separator = "\n" + self.indent * depth

        if not siblings:
            parent.text = separator
            child.tail = "\n" + self.indent * (depth - 1)
        elif index >= len(siblings):
            last = siblings[-1]
            child.tail = last.tail
            last.tail = parent.text if _is_blank(parent.text) else separator
        else:
            preceding = parent.text if index == 0 else siblings[index - 1].tail
            child.tail = preceding if _is_blank(preceding) else separator

        parent.insert(index, child)

    def _replace(self, parent: ET.Element, index: int, child: ET.Element, depth: int) -> None:
        if self.indent is not None:
            ET.indent(child, space=self.indent, level=depth)
        child.tail = parent[index].tail
        parent[index] = child


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _split_tag(tag: str) -> tuple[str, str]:
    """Split ``{namespace}local`` into ``(namespace, local)``."""
    if tag.startswith("{"):
        namespace, _, local = tag[1:].partition("}")
        return namespace, local
    return "", tag


def _is_blank(text: str | None) -> bool:
    return text is not None and text != "" and not text.strip()


def _detect_indent(root: ET.Element) -> str | None:
    """Infer one indentation unit from the whitespace before the first child.

    Returns ``None`` for compact documents without line breaks, in which case
    inserted elements are not indented either.
    """
    leading = root.text or ""
    if "\n" not in leading or leading.strip():
        return None
    unit = leading.rsplit("\n", 1)[1]
    return unit or DEFAULT_INDENT
