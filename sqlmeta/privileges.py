"""Privileges granted on database objects and their compact text form."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import groupby
from typing import Iterable


@dataclass(frozen=True)
class ObjectPrivilege:
    """A privilege granted on a table, view, sequence or similar object."""

    grantee: str
    grantor: str
    privilege_type: str
    is_grantable: bool = False

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ObjectPrivilege):
            return NotImplemented
        return (self.grantee, self.grantor, self.privilege_type) < (
            other.grantee,
            other.grantor,
            other.privilege_type,
        )


@dataclass(frozen=True)
class ColumnPrivilege:
    """A privilege granted on a single column."""

    column: str
    grantee: str
    grantor: str
    privilege_type: str
    is_grantable: bool = False

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ColumnPrivilege):
            return NotImplemented
        return (self.column, self.grantee, self.grantor, self.privilege_type) < (
            other.column,
            other.grantee,
            other.grantor,
            other.privilege_type,
        )


def _type_str(privilege: ObjectPrivilege | ColumnPrivilege) -> str:
    """Privilege type, with an asterisk when it may be granted onwards."""
    return privilege.privilege_type + ("*" if privilege.is_grantable else "")


def _line_str(grantee: str, grantor: str, types: Iterable[str]) -> str:
    line = grantee + "=" + ",".join(types)
    return f"{line}/{grantor}" if grantor else line


def _grant_lines(privileges: Iterable[ObjectPrivilege | ColumnPrivilege]) -> list[str]:
    return [
        _line_str(grantee, grantor, (_type_str(p) for p in group))
        for (grantee, grantor), group in groupby(
            privileges, key=lambda p: (p.grantee, p.grantor)
        )
    ]


class ObjectPrivileges(list):
    """Object privileges; expected to be sorted before being rendered."""

    def __str__(self) -> str:
        return "\n".join(_grant_lines(self))


class ColumnPrivileges(list):
    """Column privileges; expected to be sorted before being rendered."""

    def __str__(self) -> str:
        blocks = []
        for column, group in groupby(self, key=lambda p: p.column):
            lines = ("  " + line for line in _grant_lines(group))
            blocks.append(column + ":\n" + "\n".join(lines))
        return "\n".join(blocks)