"""Build descriptor handling: merging the backend POM and rendering the parent POM.

Quick usage::

    from bootstitch.descriptor import MergeConfig, merge

    merged = merge(
        pom_text,
        MergeConfig(
            artifact_id="shop",
            packaging="war",
            language_version="17",
            frontend_asset_relative_path="shop-frontend/dist",
        ),
    )
"""

from bootstitch.descriptor.merger import (
    COPY_FRONTEND_EXECUTION_ID,
    PARENT_ARTIFACT_ID,
    MergeConfig,
    merge,
    merge_descriptor_file,
)
from bootstitch.descriptor.templates import TemplateRenderer

__all__ = [
    "COPY_FRONTEND_EXECUTION_ID",
    "PARENT_ARTIFACT_ID",
    "MergeConfig",
    "TemplateRenderer",
    "merge",
    "merge_descriptor_file",
]
