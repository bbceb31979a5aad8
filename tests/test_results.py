from dataclasses import dataclass

import pytest

from sqlmeta.privileges import ObjectPrivilege, ObjectPrivileges
from sqlmeta.results import (
    Catalog,
    CatalogSet,
    Column,
    ColumnSet,
    Constraint,
    ConstraintSet,
    Index,
    IndexSet,
    PrivilegeSummary,
    ResultSet,
    Schema,
    SchemaSet,
    Sequence,
    SequenceSet,
    Table,
    TableSet,
    Trigger,
    TriggerSet,
    WrongNumberOfArgumentsError,
    YesNo,
)


def _tables(*names):
    return TableSet([Table(schema="public", name=n, type="BASE TABLE") for n in names])


def test_next_and_get_walk_all_records():
    rs = _tables("a", "b", "c")
    seen = []
    while rs.next():
        seen.append(rs.get().name)
    assert seen == ["a", "b", "c"]
    assert rs.next() is False


def test_reset_restarts_cursor():
    rs = _tables("a", "b")
    assert rs.next()
    assert rs.next()
    rs.reset()
    assert rs.next()
    assert rs.get().name == "a"


def test_get_before_next_raises():
    rs = _tables("a")
    with pytest.raises(IndexError):
        rs.get()


def test_empty_set():
    rs = SchemaSet([])
    assert len(rs) == 0
    assert rs.next() is False
    assert list(rs) == []


def test_filter_applies_to_next_len_and_iter():
    rs = _tables("keep1", "drop", "keep2")
    rs.set_filter(lambda r: r.name.startswith("keep"))
    assert len(rs) == 2
    assert [t.name for t in rs] == ["keep1", "keep2"]
    names = []
    while rs.next():
        names.append(rs.get().name)
    assert names == ["keep1", "keep2"]
    rs.set_filter(None)
    assert len(rs) == 3


def test_iteration_does_not_move_cursor():
    rs = _tables("a", "b")
    assert rs.next()
    assert [t.name for t in rs] == ["a", "b"]
    assert rs.get().name == "a"


def test_scan_returns_values_and_checks_count():
    rs = SchemaSet([Schema(schema="public", catalog="db")])
    assert rs.next()
    assert rs.scan(2) == ("public", "db")
    assert rs.scan() == ("public", "db")
    with pytest.raises(WrongNumberOfArgumentsError):
        rs.scan(3)


def test_scan_values_override():
    rs = SchemaSet([Schema(schema="public", catalog="db")])
    rs.set_scan_values(lambda r: [r.schema.upper()])
    assert rs.next()
    assert rs.scan(1) == ("PUBLIC",)


def test_scan_matches_columns_for_tables():
    rs = _tables("t")
    assert rs.next()
    assert len(rs.scan(len(rs.columns))) == len(rs.columns)


def test_default_columns():
    assert SchemaSet([]).columns == ["Schema", "Catalog"]
    assert SequenceSet([]).columns == ["Type", "Start", "Min", "Max", "Increment", "Cycles?"]
    assert TriggerSet([]).columns == ["Catalog", "Schema", "Table", "Name", "Definition"]
    assert CatalogSet([]).columns == ["Catalog"]


def test_columns_can_be_replaced():
    rs = ResultSet([Catalog("x")], ["Only"])
    assert rs.columns == ["Only"]
    rs.columns = ["Other"]
    assert rs.columns == ["Other"]


def test_column_values_order():
    col = Column(
        catalog="c",
        schema="s",
        table="t",
        name="n",
        ordinal_position=1,
        data_type="integer",
        default="0",
        column_size=32,
        decimal_digits=0,
        num_prec_radix=2,
        char_octet_length=0,
        is_nullable=YesNo.NO,
    )
    assert col.values() == ["c", "s", "t", "n", "integer", YesNo.NO, "0", 32, 0, 2, 0]
    assert len(col.values()) == len(ColumnSet([]).columns)


def test_index_values_put_name_before_table():
    idx = Index(schema="s", table="tbl", name="idx", is_primary=YesNo.YES, is_unique=YesNo.YES)
    assert idx.values()[:4] == ["", "s", "idx", "tbl"]
    assert len(idx.values()) == len(IndexSet([]).columns)


def test_constraint_values_leave_out_check_clause():
    con = Constraint(name="ck", check_clause="x > 0")
    assert "x > 0" not in con.values()
    rs = ConstraintSet([con])
    assert rs.next()
    with pytest.raises(WrongNumberOfArgumentsError):
        rs.scan(len(rs.columns))


def test_sequence_and_trigger_values():
    seq = Sequence(name="s", data_type="bigint", start="1", min="1", max="10", increment="1", cycles=YesNo.NO)
    assert seq.values() == ["bigint", "1", "1", "10", "1", YesNo.NO]
    trg = Trigger(schema="public", table="film", name="last_updated", definition="def")
    assert trg.values() == ["", "public", "film", "last_updated", "def"]


def test_yes_no_compares_as_string():
    assert YesNo.YES == "YES"
    assert YesNo.UNKNOWN == ""
    assert YesNo("NO") is YesNo.NO


def test_privilege_summary_defaults_render_empty():
    summary = PrivilegeSummary(schema="public", name="film", object_type="TABLE")
    assert str(summary.object_privileges) == ""
    assert str(summary.column_privileges) == ""
    summary.object_privileges.append(ObjectPrivilege("user1", "user1", "INSERT"))
    assert str(summary.values()[4]) == "user1=INSERT/user1"
    assert isinstance(summary.object_privileges, ObjectPrivileges)


def test_catalog_set_get_uses_get_catalog():
    @dataclass
    class RichCatalog:
        catalog: Catalog
        owner: str

        def values(self):
            return [self.catalog.catalog, self.owner]

        def get_catalog(self):
            return self.catalog

    rs = CatalogSet([RichCatalog(Catalog("db1"), "admin")], ["Catalog", "Owner"])
    assert rs.next()
    assert rs.get() == Catalog("db1")
    assert rs.scan(2) == ("db1", "admin")


def test_plain_catalog_get_returns_itself():
    rs = CatalogSet([Catalog("db1"), Catalog("db2")])
    got = []
    while rs.next():
        got.append(rs.get().catalog)
    assert got == ["db1", "db2"]


def test_records_are_mutable():
    col = Column(data_type="numeric", column_size=10, decimal_digits=2)
    col.data_type = "numeric(10,2)"
    rs = ColumnSet([col])
    assert rs.next()
    assert rs.get().data_type == "numeric(10,2)"