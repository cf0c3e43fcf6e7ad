from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from .model import Template, TemplateEntry, UnavailableReferences


class TemplateRepository(Protocol):
    def get_by_id(self, template_id: int) -> Optional[Template]:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[Template]:
        """Templates of a user ordered by name."""

        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        name: str,
        description: Optional[str],
        entries: Sequence[TemplateEntry],
    ) -> Template:
        """Insert the template and its entries in one transaction."""

        raise NotImplementedError

    def update(
        self,
        *,
        template_id: int,
        name: str,
        description: Optional[str],
        entries: Optional[Sequence[TemplateEntry]] = None,
    ) -> Optional[Template]:
        """Update header fields; when ``entries`` is given, replace all entries.

        Runs as one transaction. Returns None if the template vanished.
        """

        raise NotImplementedError

    def delete(self, template_id: int) -> bool:
        raise NotImplementedError


class ReferenceRepository(Protocol):
    def get_unavailable(self, *, project_ids: Iterable[int], category_ids: Iterable[int]) -> UnavailableReferences:
        """Archived or missing projects, inactive or missing categories."""

        raise NotImplementedError
