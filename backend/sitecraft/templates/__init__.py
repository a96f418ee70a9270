from .base import (
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

__all__ = [
    "GITIGNORE",
    "escape_js_string",
    "render_globals_css",
    "render_next_config",
    "render_package_json",
    "render_postcss_config",
    "render_root_layout",
    "render_tailwind_config",
    "render_tsconfig",
    "render_utils_module",
]
