"""
Configuration for result computation and report generation.

The score schema is the single source of maxPossibleTotal; every
computation receives it from here rather than deriving it per call site.
Values can be overridden with RESULT_BUILDER_* environment variables.
"""

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .data_models import ScoreSchema
from .errors import ValidationError
from .report_paginator import PAGINATION_STRATEGIES, PageFormat, get_page_format
from .score_aggregator import STANDARD_100, get_score_schema

ENV_PREFIX = "RESULT_BUILDER_"


class ResultConfig(BaseModel):
    """Per-school/term configuration threaded through every computation"""

    score_schema: ScoreSchema = Field(default=STANDARD_100, description="Component maxima and max total")
    page_format_name: str = Field("A4", description="Physical page format")
    page_margin_mm: float = Field(10.0, ge=0.0, le=50.0)
    pagination_strategy: str = Field("rows", description="rows (row-aware) or slice")

    api_base_url: str = Field("http://localhost:5000/api", description="Result-data API root")
    api_timeout_seconds: float = Field(30.0, gt=0.0)
    image_proxy_path: str = Field("/proxy/image", description="Same-origin image proxy endpoint")

    output_dir: Path = Field(Path("output") / "reports", description="Generated PDF directory")

    @field_validator("pagination_strategy")
    @classmethod
    def validate_strategy(cls, v):
        if v not in PAGINATION_STRATEGIES:
            raise ValueError(f"pagination_strategy must be one of {PAGINATION_STRATEGIES}")
        return v

    @property
    def page_format(self) -> PageFormat:
        return get_page_format(self.page_format_name, self.page_margin_mm)

    @property
    def max_possible_total(self) -> float:
        return self.score_schema.max_possible_total

    @classmethod
    def from_env(cls, **overrides) -> "ResultConfig":
        """
        Build configuration from RESULT_BUILDER_* environment variables

        SCORE_SCHEME, API_BASE_URL, API_TIMEOUT, OUTPUT_DIR, PAGINATION
        """
        values = {}

        scheme = os.environ.get(f"{ENV_PREFIX}SCORE_SCHEME")
        if scheme:
            values["score_schema"] = get_score_schema(scheme)

        base_url = os.environ.get(f"{ENV_PREFIX}API_BASE_URL")
        if base_url:
            values["api_base_url"] = base_url

        timeout = os.environ.get(f"{ENV_PREFIX}API_TIMEOUT")
        if timeout:
            try:
                values["api_timeout_seconds"] = float(timeout)
            except ValueError:
                raise ValidationError(f"{ENV_PREFIX}API_TIMEOUT must be a number, got: {timeout}") from None

        output_dir = os.environ.get(f"{ENV_PREFIX}OUTPUT_DIR")
        if output_dir:
            values["output_dir"] = Path(output_dir).expanduser()

        pagination = os.environ.get(f"{ENV_PREFIX}PAGINATION")
        if pagination:
            values["pagination_strategy"] = pagination

        values.update(overrides)
        try:
            return cls(**values)
        except ValueError as e:
            raise ValidationError(f"Invalid configuration: {e}") from e
