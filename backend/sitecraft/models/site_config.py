"""Business configuration and design system consumed by the scaffold builder.

Payloads arrive from the editor in camelCase; attributes are snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SiteType(str, Enum):
    LANDING_PAGE = "landing-page"
    BUSINESS = "business"
    ECOMMERCE = "ecommerce"
    SAAS = "saas"
    LOCAL_SERVICE = "local-service"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BusinessInfo(_CamelModel):
    name: str
    tagline: str | None = None
    description: str = ""
    industry: str = ""
    target_audience: str = ""


class Branding(_CamelModel):
    primary_color: str = "#2563eb"
    secondary_color: str = "#0f172a"
    accent_color: str = "#f59e0b"
    font_heading: str = "Inter"
    font_body: str = "Inter"
    logo_url: str | None = None
    style: str = "minimal"


class GenerationConfig(_CamelModel):
    site_type: SiteType = SiteType.BUSINESS
    business: BusinessInfo
    branding: Branding = Field(default_factory=Branding)
    sections: list[dict[str, Any]] = Field(default_factory=list)
    pages: list[str] = Field(default_factory=lambda: ["Home", "About", "Services", "Contact"])
    ai_prompt: str = ""
    navigation: dict[str, Any] | None = None


class DesignColors(_CamelModel):
    primary: dict[str, str] = Field(default_factory=dict)
    secondary: dict[str, str] = Field(default_factory=dict)
    accent: dict[str, str] = Field(default_factory=dict)
    neutral: dict[str, str] = Field(default_factory=dict)


class Typography(_CamelModel):
    heading_font: str = "Inter"
    body_font: str = "Inter"
    scale: dict[str, dict[str, str]] = Field(default_factory=dict)


class DesignSystem(_CamelModel):
    colors: DesignColors = Field(default_factory=DesignColors)
    typography: Typography = Field(default_factory=Typography)
    spacing: dict[str, str] = Field(default_factory=dict)
    border_radius: dict[str, str] = Field(default_factory=dict)
    shadows: dict[str, str] = Field(default_factory=dict)
