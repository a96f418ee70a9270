"""Repairs for model-produced files before a version is completed.

Generated components are sometimes cut off mid-file. Shipping them breaks the
provider build, so truncated components are dropped, pages stop referencing
them, and the layout-critical ``Navbar``/``Footer`` get deterministic
fallbacks.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field

import structlog

from sitecraft.models.generation import FileKind
from sitecraft.models.site_config import GenerationConfig

from .file_tree import VirtualFileTree

logger = structlog.get_logger(__name__)

CRITICAL_COMPONENTS = ("Navbar", "Footer")
NOT_FOUND_PATH = "src/app/not-found.tsx"

_VALID_LAST_LINE = ("}", ")", ";", "/>", "export default")
_COMPONENT_PATH = re.compile(r"^src/components/(?P<name>[^/]+)\.tsx$")
_COMPONENT_IMPORT = re.compile(
    r"import\s+(?P<local>\w+)\s+from\s+['\"]@/components/(?P<module>\w+)['\"];?\s*\n?"
)


@dataclass(slots=True)
class SanitizeReport:
    dropped: list[str] = field(default_factory=list)
    fallbacks: list[str] = field(default_factory=list)
    cleaned_pages: list[str] = field(default_factory=list)


def is_file_truncated(content: str) -> bool:
    """Heuristic check for a TSX/TS module that was cut off."""
    trimmed = content.rstrip()
    if not trimmed:
        return True

    last_line = trimmed.split("\n")[-1].strip()
    if not any(last_line.endswith(end) or last_line.startswith(end) for end in _VALID_LAST_LINE):
        return True

    if trimmed.count("{") > trimmed.count("}"):
        return True
    if trimmed.count("(") > trimmed.count(")"):
        return True

    return "export " not in trimmed


def clean_page_file(content: str, available_components: set[str]) -> str:
    """Strip imports and JSX usages of components that are not in the tree."""
    missing = [
        match.group("local")
        for match in _COMPONENT_IMPORT.finditer(content)
        if match.group("module") not in available_components
    ]
    result = content
    for name in map(re.escape, missing):
        result = re.sub(rf"import\s+{name}\s+from\s+['\"][^'\"]+['\"];?\s*\n?", "", result)
        # \b keeps <HeroSection> when only Hero is missing
        result = re.sub(rf"\s*<{name}\b[^>]*>", "", result)
        result = re.sub(rf"\s*</{name}\s*>", "", result)
    return result


def sanitize_tree(tree: VirtualFileTree, config: GenerationConfig) -> SanitizeReport:
    report = SanitizeReport()
    available: set[str] = set()

    for path, file in tree.entries():
        match = _COMPONENT_PATH.match(path)
        if match is None:
            continue
        name = match.group("name")
        if name in CRITICAL_COMPONENTS:
            continue
        if is_file_truncated(file.content):
            tree.remove_file(path)
            report.dropped.append(path)
        else:
            available.add(name)

    for name in CRITICAL_COMPONENTS:
        path = f"src/components/{name}.tsx"
        existing = tree.get_file(path)
        if existing is None or is_file_truncated(existing.content):
            content = render_fallback_navbar(config) if name == "Navbar" else render_fallback_footer(config)
            tree.add_file(path, content, FileKind.COMPONENT)
            report.fallbacks.append(path)
        available.add(name)

    for path, file in tree.entries():
        if file.kind is not FileKind.PAGE and not path.endswith("/page.tsx"):
            continue
        cleaned = clean_page_file(file.content, available)
        if cleaned != file.content:
            tree.add_file(path, cleaned, file.kind)
            report.cleaned_pages.append(path)

    if NOT_FOUND_PATH not in tree:
        tree.add_file(NOT_FOUND_PATH, render_not_found_page(), FileKind.PAGE)
        report.fallbacks.append(NOT_FOUND_PATH)

    if report.dropped or report.fallbacks:
        logger.info(
            "generated_files_sanitized",
            dropped=report.dropped,
            fallbacks=report.fallbacks,
            cleaned_pages=report.cleaned_pages,
        )
    return report


def jsx_text(value: str) -> str:
    return html.escape(value, quote=False).replace("{", "&#123;").replace("}", "&#125;")


def _page_links(config: GenerationConfig, indent: str, css: str) -> str:
    links = []
    for page in config.pages:
        href = "/" if page.lower() == "home" else "/" + re.sub(r"\s+", "-", page.lower())
        links.append(f'{indent}<a href="{html.escape(href)}" className="{css}">{jsx_text(page)}</a>')
    return "\n".join(links)


def render_fallback_navbar(config: GenerationConfig) -> str:
    name = jsx_text(config.business.name or "My Website")
    links = _page_links(config, " " * 12, "text-gray-300 hover:text-white transition-colors")
    mobile_links = _page_links(config, " " * 10, "block text-gray-300 hover:text-white")
    return f"""'use client';
import {{ useState }} from 'react';

export default function Navbar() {{
  const [isOpen, setIsOpen] = useState(false);
  return (
    <nav className="fixed top-0 w-full z-50 bg-gray-900/95 backdrop-blur-sm border-b border-gray-800">
      <div className="max-w-7xl mx-auto px-4 sm:px-6 lg:px-8">
        <div className="flex items-center justify-between h-16">
          <a href="/" className="text-xl font-bold text-white">{name}</a>
          <div className="hidden md:flex items-center space-x-8">
{links}
          </div>
          <button
            onClick={{() => setIsOpen(!isOpen)}}
            className="md:hidden text-gray-300 hover:text-white"
            aria-label="Toggle menu"
          >
            <svg className="h-6 w-6" fill="none" viewBox="0 0 24 24" stroke="currentColor">
              <path strokeLinecap="round" strokeLinejoin="round" strokeWidth={{2}} d="M4 6h16M4 12h16M4 18h16" />
            </svg>
          </button>
        </div>
      </div>
      {{isOpen && (
        <div className="md:hidden bg-gray-900 border-t border-gray-800 px-4 py-4 space-y-3">
{mobile_links}
        </div>
      )}}
    </nav>
  );
}}
"""


def render_fallback_footer(config: GenerationConfig) -> str:
    name = jsx_text(config.business.name or "My Website")
    links = _page_links(config, " " * 12, "text-gray-400 hover:text-white transition-colors")
    return f"""export default function Footer() {{
  return (
    <footer className="bg-gray-900 text-gray-300 pt-12 pb-8">
      <div className="max-w-7xl mx-auto px-4 sm:px-6 lg:px-8">
        <div className="flex flex-col md:flex-row justify-between items-start md:items-center gap-8 pb-8 border-b border-gray-800">
          <h3 className="text-xl font-bold text-white">{name}</h3>
          <div className="flex flex-wrap gap-6">
{links}
          </div>
        </div>
        <p className="mt-8 text-sm text-gray-500">
          &copy; {{new Date().getFullYear()}} {name}. All rights reserved.
        </p>
      </div>
    </footer>
  );
}}
"""


def render_not_found_page() -> str:
    return """export default function NotFound() {
  return (
    <div className="min-h-screen flex items-center justify-center bg-gray-50">
      <div className="text-center px-6">
        <h1 className="text-6xl font-bold text-gray-900 mb-4">404</h1>
        <h2 className="text-2xl font-semibold text-gray-700 mb-2">Page Not Found</h2>
        <p className="text-gray-500 mb-8 max-w-md mx-auto">
          The page you are looking for does not exist or has been moved.
        </p>
        <a href="/" className="inline-flex items-center px-6 py-3 rounded-lg bg-gray-900 text-white font-medium">
          Back to Home
        </a>
      </div>
    </div>
  );
}
"""
