from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from sitecraft.models.generation import FileKind, GeneratedFileCreate, TriggerType
from sitecraft.models.site_config import DesignSystem, GenerationConfig
from sitecraft.services.scaffold_builder import ComponentRef, PageMetadata, render_page_file
from sitecraft.tools.file_tree import VirtualFileTree
from sitecraft.tools.sanitizer import jsx_text

HERO_PATH = "src/components/Hero.tsx"

EDIT_TRIGGERS = frozenset({TriggerType.SECTION_EDIT, TriggerType.STYLE_CHANGE})


def target_files(trigger_details: Mapping[str, Any] | None) -> list[str]:
    """Paths an edit asked to rewrite; both ``target_files`` and ``targetFiles`` are accepted."""
    details = trigger_details or {}
    return list(details.get("target_files") or details.get("targetFiles") or [])


@dataclass(slots=True)
class ProducedContent:
    """Page and component files produced for one generation run."""

    files: list[GeneratedFileCreate] = field(default_factory=list)
    total_tokens_used: int = 0
    model_used: str | None = None


class ContentProducer(Protocol):
    """Source of page/section content layered on top of the scaffold.

    For edit triggers ``base_tree`` holds the latest complete version's files.
    Anything the producer does not return is carried over unchanged.
    """

    async def produce(
        self,
        config: GenerationConfig,
        design_system: DesignSystem,
        *,
        trigger_type: TriggerType = TriggerType.INITIAL,
        trigger_details: Mapping[str, Any] | None = None,
        base_tree: VirtualFileTree | None = None,
    ) -> ProducedContent: ...


class FallbackContentProducer:
    """Simple producer that emits a minimal home page without calling a model.

    ``Navbar`` and ``Footer`` are referenced but not written; the sanitizer
    supplies them. Edits only rewrite a targeted hero section.
    """

    model_name = "fallback"

    async def produce(
        self,
        config: GenerationConfig,
        design_system: DesignSystem,
        *,
        trigger_type: TriggerType = TriggerType.INITIAL,
        trigger_details: Mapping[str, Any] | None = None,
        base_tree: VirtualFileTree | None = None,
    ) -> ProducedContent:
        hero = GeneratedFileCreate(
            file_path=HERO_PATH,
            content=self._build_hero(config),
            file_type=FileKind.COMPONENT,
            section_type="hero",
        )
        if trigger_type in EDIT_TRIGGERS:
            files = [hero] if HERO_PATH in target_files(trigger_details) else []
            return ProducedContent(files=files, model_used=self.model_name)

        business = config.business
        page = render_page_file(
            [
                ComponentRef("Navbar", "@/components/Navbar"),
                ComponentRef("Hero", "@/components/Hero"),
                ComponentRef("Footer", "@/components/Footer"),
            ],
            PageMetadata(
                title=business.name,
                description=business.tagline or business.description or business.name,
            ),
        )
        return ProducedContent(
            files=[
                hero,
                GeneratedFileCreate(
                    file_path="src/app/page.tsx",
                    content=page,
                    file_type=FileKind.PAGE,
                ),
            ],
            model_used=self.model_name,
        )

    def _build_hero(self, config: GenerationConfig) -> str:
        business = config.business
        headline = jsx_text(business.name)
        subline = jsx_text(business.tagline or business.description or "Welcome")
        return f"""export default function Hero() {{
  return (
    <section className="bg-gradient-to-b from-primary-50 to-white py-24">
      <div className="mx-auto max-w-4xl px-4 text-center">
        <h1 className="text-5xl font-bold text-gray-900">{headline}</h1>
        <p className="mt-6 text-xl text-gray-600">{subline}</p>
      </div>
    </section>
  );
}}
"""
