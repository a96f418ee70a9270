from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sitecraft.models.generation import FileKind
from sitecraft.models.site_config import DesignSystem, GenerationConfig
from sitecraft.templates import (
    GITIGNORE,
    escape_js_string,
    render_globals_css,
    render_next_config,
    render_package_json,
    render_postcss_config,
    render_root_layout,
    render_tailwind_config,
    render_tsconfig,
    render_utils_module,
)
from sitecraft.tools.file_tree import VirtualFileTree


@dataclass(slots=True, frozen=True)
class ComponentRef:
    name: str
    path: str


@dataclass(slots=True, frozen=True)
class PageMetadata:
    title: str
    description: str


def build_scaffold_tree(config: GenerationConfig, design_system: DesignSystem) -> VirtualFileTree:
    """Populate a tree with the fixed skeleton of a deployable project.

    Content files produced later are added on top; a later write to the same
    path replaces the scaffold version.
    """
    tree = VirtualFileTree()

    # Config files
    tree.add_file("package.json", render_package_json(config), FileKind.CONFIG)
    tree.add_file("next.config.js", render_next_config(), FileKind.CONFIG)
    tree.add_file("tsconfig.json", render_tsconfig(), FileKind.CONFIG)
    tree.add_file("tailwind.config.js", render_tailwind_config(design_system), FileKind.CONFIG)
    tree.add_file("postcss.config.js", render_postcss_config(), FileKind.CONFIG)
    tree.add_file(".gitignore", GITIGNORE, FileKind.CONFIG)

    # Base source files
    tree.add_file("src/app/globals.css", render_globals_css(design_system), FileKind.STYLE)
    tree.add_file("src/app/layout.tsx", render_root_layout(config, design_system), FileKind.PAGE)
    tree.add_file("src/lib/utils.ts", render_utils_module(), FileKind.DATA)

    return tree


def render_page_file(components: Sequence[ComponentRef], metadata: PageMetadata) -> str:
    """Render a page module that stacks *components* inside ``<main>``."""
    imports = "\n".join(f"import {ref.name} from '{escape_js_string(ref.path)}';" for ref in components)
    body = "\n".join(f"      <{ref.name} />" for ref in components)

    return f"""import type {{ Metadata }} from 'next';
{imports}

export const metadata: Metadata = {{
  title: '{escape_js_string(metadata.title)}',
  description: '{escape_js_string(metadata.description)}',
}};

export default function Page() {{
  return (
    <main>
{body}
    </main>
  );
}}
"""
