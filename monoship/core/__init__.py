"""
Core functionality exports for monoship.

This module provides convenient access to the core subsystems of monoship.
Importing from here keeps user-facing imports clean and stable:

    from monoship.core import prepare_batch, publish_batch
"""

from __future__ import annotations

from monoship.core.exports import ExportsTable
from monoship.core.layout import Layout, plan_layout
from monoship.core.identity import validate_publish_names
from monoship.core.publisher import publish_batch
from monoship.core.manifest import build_output_manifest
from monoship.core.registry import NpmRegistry, Registry
from monoship.core.specifiers import ModuleReference, scan_module_references
from monoship.core.rewriter import FileKind, ModuleRewriter, RewriteReport, rewrite
from monoship.core.closure import build_order, resolve_closure, resolve_closures
from monoship.core.workspace import discover_workspace, find_monorepo_root
from monoship.core.pipeline import PreparedBatch, prepare_batch, write_batch
from monoship.core.assembler import AssemblyPlan, AssemblyResult, PackageAssembler
from monoship.core.versioning import (
    VersionSpecifier,
    parse_version_specifier,
    resolve_versions,
)

__all__ = [
    # Workspace
    "discover_workspace",
    "find_monorepo_root",
    "validate_publish_names",
    # Closures
    "resolve_closure",
    "resolve_closures",
    "build_order",
    # Layout and rewriting
    "ExportsTable",
    "Layout",
    "plan_layout",
    "FileKind",
    "ModuleReference",
    "scan_module_references",
    "ModuleRewriter",
    "RewriteReport",
    "rewrite",
    # Assembly
    "AssemblyPlan",
    "AssemblyResult",
    "PackageAssembler",
    "build_output_manifest",
    "PreparedBatch",
    "prepare_batch",
    "write_batch",
    # Versions and publishing
    "VersionSpecifier",
    "parse_version_specifier",
    "resolve_versions",
    "Registry",
    "NpmRegistry",
    "publish_batch",
]
