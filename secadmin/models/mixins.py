"""Shared columns and helpers for SEC schema tables."""

from typing import Iterable, Set

from sqlalchemy import Column, DateTime, String, func

from secadmin.core.id_codec import decode_ids, encode_ids


class AuditMixin:
    """Status plus who/when columns carried by every SEC table."""

    status = Column(String(20), nullable=False, default="ACTIVE", index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    created_by = Column(String(100), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=True)
    updated_by = Column(String(100), nullable=True)


class RoleGraphMixin:
    """Decoded access to the three id-array columns of a role row.

    Subclasses map ``items_json``, ``parents_json`` and ``children_json`` to
    their own column names.
    """

    @property
    def explicit_item_ids(self) -> Set[int]:
        return decode_ids(self.items_json)

    @explicit_item_ids.setter
    def explicit_item_ids(self, ids: Iterable[int]) -> None:
        self.items_json = encode_ids(ids)

    @property
    def parent_ids(self) -> Set[int]:
        return decode_ids(self.parents_json)

    @parent_ids.setter
    def parent_ids(self, ids: Iterable[int]) -> None:
        self.parents_json = encode_ids(ids)

    @property
    def child_ids(self) -> Set[int]:
        return decode_ids(self.children_json)

    @child_ids.setter
    def child_ids(self, ids: Iterable[int]) -> None:
        self.children_json = encode_ids(ids)

    def __repr__(self):
        return f"<{type(self).__name__} {self.id} {self.code}>"
