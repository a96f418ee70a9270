from __future__ import annotations

import io
import zipfile

from sitecraft.models.site_config import GenerationConfig, SiteType

from .file_tree import VirtualFileTree
from .path_utils import ensure_relative

# Fixed timestamp so identical trees produce identical archives
_ZIP_TIMESTAMP = (2024, 1, 1, 0, 0, 0)


def build_project_archive(tree: VirtualFileTree, config: GenerationConfig) -> bytes:
    """Zip every file of *tree* plus a README and an ``.env.example``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=6) as archive:
        for path, file in tree.entries():
            _write_entry(archive, ensure_relative(path), file.content)
        _write_entry(archive, "README.md", render_readme(config))
        _write_entry(archive, ".env.example", render_env_example(config))
    return buffer.getvalue()


def _write_entry(archive: zipfile.ZipFile, path: str, content: str) -> None:
    info = zipfile.ZipInfo(path, date_time=_ZIP_TIMESTAMP)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    archive.writestr(info, content.encode("utf-8"))


def render_readme(config: GenerationConfig) -> str:
    business = config.business
    return f"""# {business.name}

{business.description}

## Getting Started

1. Install dependencies:

```bash
npm install
```

2. Copy the environment file:

```bash
cp .env.example .env.local
```

3. Start the development server:

```bash
npm run dev
```

4. Open [http://localhost:3000](http://localhost:3000) in your browser.

## Tech Stack

- **Framework**: [Next.js](https://nextjs.org/) 14 (App Router)
- **Styling**: [Tailwind CSS](https://tailwindcss.com/)
- **Icons**: [Lucide React](https://lucide.dev/)
- **Language**: TypeScript

## Build for Production

```bash
npm run build
npm start
```
"""


def render_env_example(config: GenerationConfig) -> str:
    lines = [
        "# Site Configuration",
        f'NEXT_PUBLIC_SITE_NAME="{config.business.name}"',
        "NEXT_PUBLIC_SITE_URL=http://localhost:3000",
    ]
    if config.site_type is SiteType.ECOMMERCE:
        lines += [
            "",
            "# E-commerce (add your payment provider keys)",
            "# STRIPE_SECRET_KEY=",
            "# NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY=",
        ]
    elif config.site_type is SiteType.SAAS:
        lines += [
            "",
            "# Auth (add your auth provider keys)",
            "# NEXTAUTH_SECRET=",
            "# NEXTAUTH_URL=http://localhost:3000",
            "",
            "# Database",
            "# DATABASE_URL=",
        ]
    return "\n".join(lines) + "\n"
