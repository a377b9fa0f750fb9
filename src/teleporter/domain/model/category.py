"""Template categories and the repository bindings that subscribe to them."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


def normalize_path(path: str) -> str:
    """Repository-relative form of a template path, without a leading slash."""

    return path.strip().lstrip("/")


class UnknownCategoryError(LookupError):
    """Raised when a category name is not defined in the bindings."""

    def __init__(self, category: str) -> None:
        super().__init__(f"Unknown template category: {category}")
        self.category = category


@dataclass(frozen=True, slots=True)
class TemplateCategory:
    """Named set of template paths shared by repositories with the same needs."""

    name: str
    paths: tuple[str, ...]
    description: str | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Category name must not be blank")
        object.__setattr__(self, "paths", tuple(normalize_path(path) for path in self.paths))
        if not all(self.paths):
            raise ValueError(f"Category {self.name!r} lists a blank template path")
        if len(set(self.paths)) != len(self.paths):
            raise ValueError(f"Category {self.name!r} lists a template path more than once")

    def __contains__(self, path: object) -> bool:
        return path in self.paths


@dataclass(frozen=True, slots=True)
class CategoryBindings:
    """Immutable view of ``category -> paths`` and ``repository -> category``."""

    categories: Mapping[str, TemplateCategory] = field(default_factory=dict)
    repositories: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name, category in self.categories.items():
            if name != category.name:
                raise ValueError(f"Category key {name!r} does not match {category.name!r}")
        for repository, category_name in self.repositories.items():
            if category_name not in self.categories:
                raise ValueError(
                    f"Repository {repository!r} is bound to undefined category {category_name!r}"
                )
        object.__setattr__(self, "categories", MappingProxyType(dict(self.categories)))
        object.__setattr__(self, "repositories", MappingProxyType(dict(self.repositories)))

    @classmethod
    def build(
        cls,
        categories: Mapping[str, Iterable[str]],
        repositories: Mapping[str, str],
    ) -> CategoryBindings:
        return cls(
            categories={
                name: TemplateCategory(name=name, paths=tuple(paths))
                for name, paths in categories.items()
            },
            repositories=repositories,
        )

    def category(self, name: str) -> TemplateCategory:
        try:
            return self.categories[name]
        except KeyError:
            raise UnknownCategoryError(name) from None

    def category_of(self, repository: str) -> str | None:
        return self.repositories.get(repository)

    def repositories_for(self, category: str) -> tuple[str, ...]:
        self.category(category)
        return tuple(
            sorted(repo for repo, bound in self.repositories.items() if bound == category)
        )
