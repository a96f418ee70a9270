"""Renderers for the fixed files every generated Next.js project carries.

All renderers are pure: the same inputs always produce the same text.
"""

from __future__ import annotations

import json
import re

from sitecraft.models.site_config import DesignSystem, GenerationConfig, SiteType

GITIGNORE = """# dependencies
/node_modules
/.pnp
.pnp.js

# testing
/coverage

# next.js
/.next/
/out/

# production
/build

# misc
.DS_Store
*.pem

# debug
npm-debug.log*
yarn-debug.log*
yarn-error.log*

# local env files
.env*.local

# vercel
.vercel

# typescript
*.tsbuildinfo
next-env.d.ts
"""

BASE_DEPENDENCIES = {
    "next": "^14.2.0",
    "react": "^18.3.0",
    "react-dom": "^18.3.0",
    "tailwindcss": "^3.4.0",
    "autoprefixer": "^10.4.0",
    "postcss": "^8.4.0",
    "clsx": "^2.1.0",
    "tailwind-merge": "^2.4.0",
    "lucide-react": "^0.400.0",
}

DEV_DEPENDENCIES = {
    "@types/node": "^20.0.0",
    "@types/react": "^18.3.0",
    "@types/react-dom": "^18.3.0",
    "typescript": "^5.4.0",
    "eslint": "^8.57.0",
    "eslint-config-next": "^14.2.0",
}


def escape_js_string(value: str) -> str:
    """Escape *value* for a single-quoted JS string literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")


def package_name(business_name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", business_name.lower()).strip("-")
    return slug or "generated-site"


def render_package_json(config: GenerationConfig) -> str:
    dependencies = dict(BASE_DEPENDENCIES)
    if config.site_type in (SiteType.ECOMMERCE, SiteType.SAAS):
        dependencies["zustand"] = "^4.5.0"

    manifest = {
        "name": package_name(config.business.name),
        "version": "0.1.0",
        "private": True,
        "scripts": {
            "dev": "next dev",
            "build": "next build",
            "start": "next start",
            "lint": "next lint",
        },
        "dependencies": dependencies,
        "devDependencies": DEV_DEPENDENCIES,
    }
    return json.dumps(manifest, indent=2, ensure_ascii=False)


def render_next_config() -> str:
    return """/** @type {import('next').NextConfig} */
const nextConfig = {
  reactStrictMode: true,
  images: {
    remotePatterns: [{ protocol: 'https', hostname: '**' }],
  },
};

module.exports = nextConfig;
"""


def render_tsconfig() -> str:
    tsconfig = {
        "compilerOptions": {
            "target": "ES2017",
            "lib": ["dom", "dom.iterable", "esnext"],
            "allowJs": True,
            "skipLibCheck": True,
            "strict": False,
            "noEmit": True,
            "esModuleInterop": True,
            "module": "esnext",
            "moduleResolution": "bundler",
            "resolveJsonModule": True,
            "isolatedModules": True,
            "jsx": "preserve",
            "incremental": True,
            "plugins": [{"name": "next"}],
            "paths": {"@/*": ["./src/*"]},
        },
        "include": ["next-env.d.ts", "**/*.ts", "**/*.tsx", ".next/types/**/*.ts"],
        "exclude": ["node_modules"],
    }
    return json.dumps(tsconfig, indent=2)


def render_tailwind_config(design_system: DesignSystem) -> str:
    colors = design_system.colors
    theme = {
        "colors": {
            "primary": colors.primary,
            "secondary": colors.secondary,
            "accent": colors.accent,
            "neutral": colors.neutral,
        },
        "fontFamily": {
            "heading": [design_system.typography.heading_font, "sans-serif"],
            "body": [design_system.typography.body_font, "sans-serif"],
        },
        "borderRadius": design_system.border_radius,
        "boxShadow": design_system.shadows,
        "spacing": design_system.spacing,
    }
    extend = json.dumps(theme, indent=2, ensure_ascii=False).replace("\n", "\n    ")
    return f"""/** @type {{import('tailwindcss').Config}} */
module.exports = {{
  content: ['./src/**/*.{{js,ts,jsx,tsx,mdx}}'],
  theme: {{
    extend: {extend},
  }},
  plugins: [],
}};
"""


def render_postcss_config() -> str:
    return """module.exports = {
  plugins: {
    tailwindcss: {},
    autoprefixer: {},
  },
};
"""


def render_globals_css(design_system: DesignSystem) -> str:
    heading = design_system.typography.heading_font
    body = design_system.typography.body_font
    return f"""@tailwind base;
@tailwind components;
@tailwind utilities;

@layer base {{
  * {{
    @apply border-neutral-200;
  }}

  body {{
    @apply bg-white text-neutral-900 antialiased;
    font-family: '{body}', sans-serif;
  }}

  h1, h2, h3, h4, h5, h6 {{
    font-family: '{heading}', sans-serif;
  }}
}}

@layer utilities {{
  .text-balance {{
    text-wrap: balance;
  }}
}}
"""


def render_root_layout(config: GenerationConfig, design_system: DesignSystem) -> str:
    business = config.business
    title = escape_js_string(business.name)
    if business.tagline:
        title = f"{title} \u2014 {escape_js_string(business.tagline)}"
    description = escape_js_string(business.description[:160])

    families: list[str] = []
    for font in (design_system.typography.heading_font, design_system.typography.body_font):
        if font not in families:
            families.append(font)
    font_query = "&".join(
        f"family={font.replace(' ', '+')}:wght@300;400;500;600;700;800" for font in families
    )

    return f"""import type {{ Metadata }} from 'next';
import './globals.css';

export const metadata: Metadata = {{
  title: '{title}',
  description: '{description}',
}};

export const viewport = {{
  width: 'device-width',
  initialScale: 1,
  maximumScale: 5,
}};

export default function RootLayout({{
  children,
}}: {{
  children: React.ReactNode;
}}) {{
  return (
    <html lang="en">
      <head>
        <link rel="preconnect" href="https://fonts.googleapis.com" />
        <link rel="preconnect" href="https://fonts.gstatic.com" crossOrigin="anonymous" />
        <link
          href="https://fonts.googleapis.com/css2?{font_query}&display=swap"
          rel="stylesheet"
        />
      </head>
      <body className="min-h-screen antialiased overflow-x-hidden">
        {{children}}
      </body>
    </html>
  );
}}
"""


def render_utils_module() -> str:
    return """import { clsx, type ClassValue } from 'clsx';
import { twMerge } from 'tailwind-merge';

export function cn(...inputs: ClassValue[]) {
  return twMerge(clsx(inputs));
}
"""
