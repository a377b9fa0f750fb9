"""Loading of category and repository bindings from ``template-teleporter.toml``.

Layout::

    [categories.rust_service]
    description = "Rust services"
    files = [".github/ISSUE_TEMPLATE/bug.yml", "ci/lint.yml"]

    [repositories."acme/api"]
    category = "rust_service"
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from teleporter.domain.model import CategoryBindings, TemplateCategory, normalize_path

from .errors import ConfigurationError

DEFAULT_BINDINGS_FILENAME: Final[str] = "template-teleporter.toml"


class _BindingsModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class CategoryEntry(_BindingsModel):
    files: list[str] = Field(min_length=1)
    description: str | None = None

    @field_validator("files")
    @classmethod
    def _strip_paths(cls, value: list[str]) -> list[str]:
        paths = [normalize_path(path) for path in value]
        if any(not path for path in paths):
            raise ValueError("template paths must not be blank")
        return paths


class RepositoryEntry(_BindingsModel):
    category: str


class BindingsDocument(_BindingsModel):
    categories: dict[str, CategoryEntry] = Field(default_factory=dict)
    repositories: dict[str, RepositoryEntry] = Field(default_factory=dict)

    def to_bindings(self) -> CategoryBindings:
        return CategoryBindings(
            categories={
                name: TemplateCategory(
                    name=name, paths=tuple(entry.files), description=entry.description
                )
                for name, entry in self.categories.items()
            },
            repositories={
                repository: entry.category for repository, entry in self.repositories.items()
            },
        )


def get_bindings_path() -> Path:
    return Path(os.getenv("TELEPORTER_BINDINGS") or DEFAULT_BINDINGS_FILENAME)


def parse_bindings(text: str, *, source: str = "<bindings>") -> CategoryBindings:
    try:
        document = BindingsDocument.model_validate(tomllib.loads(text))
        return document.to_bindings()
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"{source} is not valid TOML: {exc}") from exc
    except ValidationError as exc:
        raise ConfigurationError(f"{source} has an invalid layout:\n{exc}") from exc
    except ValueError as exc:
        raise ConfigurationError(f"{source}: {exc}") from exc


def load_bindings(path: Path | None = None) -> CategoryBindings:
    """Read and validate the bindings file, defaulting to ``get_bindings_path()``."""

    resolved = path or get_bindings_path()
    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read bindings file {resolved}: {exc}") from exc
    return parse_bindings(text, source=str(resolved))
