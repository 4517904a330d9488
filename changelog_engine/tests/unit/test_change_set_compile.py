"""Compile tests for change sets and everything nested in them."""

from __future__ import annotations

from datetime import datetime, time

import pytest

from changelog_engine.errors import ChangeLogParseError
from changelog_engine.models.changes import (
    AddForeignKeyConstraintChange,
    CreateTableChange,
    DropTableChange,
    InsertDataChange,
    RawSqlChange,
    UpdateDataChange,
)
from changelog_engine.models.columns import AddColumnConfig
from changelog_engine.models.functions import DatabaseFunction
from changelog_engine.models.options import ObjectQuotingStrategy, ValidationFailOption
from changelog_engine.models.sql_visitors import AppendSqlVisitor, ReplaceSqlVisitor

# ---------------------------------------------------------------------------
# Change-set attributes
# ---------------------------------------------------------------------------


class TestChangeSetAttributes:
    def test_defaults(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="alice"):
                        dropTable(tableName="old")
                """
            }
        )
        (change_set,) = change_log.change_sets
        assert change_set.id == "1"
        assert change_set.author == "alice"
        assert change_set.run_in_transaction is True
        assert change_set.run_always is False
        assert change_set.run_on_change is False
        assert change_set.fail_on_error is None
        assert change_set.on_validation_fail is None
        assert change_set.labels is None
        assert change_set.created is None
        assert change_set.run_order is None
        assert change_set.ignore is False
        assert change_set.context_filter is None
        assert change_set.dbms is None
        assert change_set.file_path == "changelog.py"
        assert change_set.change_log is change_log

    def test_explicit_attributes(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(
                        id="2",
                        author="bob",
                        runAlways=True,
                        runOnChange="true",
                        runInTransaction="false",
                        failOnError=False,
                        onValidationFail="MARK_RAN",
                        labels="core, nightly",
                        created="2024-01-01",
                        runOrder="LAST",
                        dbms="h2, postgresql",
                        runWith="sqlplus",
                        objectQuotingStrategy="QUOTE_ALL_OBJECTS",
                    ):
                        empty()
                """
            }
        )
        change_set = change_log.change_sets[0]
        assert change_set.run_always is True
        assert change_set.run_on_change is True
        assert change_set.run_in_transaction is False
        assert change_set.fail_on_error is False
        assert change_set.on_validation_fail is ValidationFailOption.MARK_RAN
        assert change_set.labels.labels == ["core", "nightly"]
        assert change_set.created == "2024-01-01"
        assert change_set.run_order == "last"
        assert change_set.dbms == {"h2", "postgresql"}
        assert change_set.run_with == "sqlplus"
        assert change_set.object_quoting_strategy is ObjectQuotingStrategy.QUOTE_ALL_OBJECTS

    def test_context_filter_wins_over_context(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a", context="old", contextFilter="new"):
                        empty()
                """
            }
        )
        assert change_log.change_sets[0].context_filter.contexts == ["new"]

    def test_always_run_is_removed(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="Please use 'runAlways' instead"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a", alwaysRun=True):
                            empty()
                    """
                }
            )

    def test_unknown_attribute(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="ChangeSet '1': 'bogus' is not a supported attribute"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a", bogus="x"):
                            empty()
                    """
                }
            )

    def test_invalid_quoting_strategy(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="not a supported ChangeSet ObjectQuotingStrategy"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a", objectQuotingStrategy="SOMETIMES"):
                            empty()
                    """
                }
            )

    def test_invalid_run_order(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="runOrder"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a", runOrder="middle"):
                            empty()
                    """
                }
            )

    def test_quoting_strategy_inherited_from_change_log(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog(objectQuotingStrategy="QUOTE_ONLY_RESERVED_WORDS"):
                    with changeSet(id="1", author="a"):
                        empty()
                """
            }
        )
        assert change_log.object_quoting_strategy is ObjectQuotingStrategy.QUOTE_ONLY_RESERVED_WORDS
        assert change_log.change_sets[0].object_quoting_strategy is ObjectQuotingStrategy.QUOTE_ONLY_RESERVED_WORDS

    def test_file_path_precedence(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog(logicalFilePath="db/main"):
                    with changeSet(id="1", author="a"):
                        empty()
                    with changeSet(id="2", author="a", filePath="legacy/path"):
                        empty()
                    with changeSet(id="3", author="a", filePath="legacy/path", logicalFilePath="new/path"):
                        empty()
                """
            }
        )
        assert [cs.file_path for cs in change_log.change_sets] == ["db/main", "legacy/path", "new/path"]

    def test_attributes_are_expanded(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    property(name="who", value="carol")
                    with changeSet(id="${who}-1", author="${who}"):
                        empty()
                """
            }
        )
        assert change_log.change_sets[0].id == "carol-1"
        assert change_log.change_sets[0].author == "carol"


# ---------------------------------------------------------------------------
# Directives, columns and constraints
# ---------------------------------------------------------------------------


class TestDirectives:
    def test_create_table_with_columns_and_constraints(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    property(name="table", value="monkey")
                    with changeSet(id="1", author="a"):
                        with createTable(tableName="${table}"):
                            with column(name="id", type="int"):
                                constraints(primaryKey=True, nullable=False)
                            with column(name="name", type="varchar(50)"):
                                unique(True)
                            column(name="notes", type="text")
                """
            }
        )
        (change,) = change_log.change_sets[0].changes
        assert isinstance(change, CreateTableChange)
        assert change.table_name == "monkey"
        assert [c.name for c in change.columns] == ["id", "name", "notes"]
        assert change.columns[0].constraints.primary_key is True
        assert change.columns[0].constraints.nullable is False
        assert change.columns[1].constraints.unique is True
        assert change.columns[2].constraints is None

    def test_add_column_uses_its_column_type(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a"):
                        with addColumn(tableName="t"):
                            column(name="c", type="int", afterColumn="b")
                """
            }
        )
        column = change_log.change_sets[0].changes[0].columns[0]
        assert isinstance(column, AddColumnConfig)
        assert column.after_column == "b"

    def test_sql_positional_argument(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a"):
                        sql("insert into t values (1)", splitStatements=False)
                """
            }
        )
        change = change_log.change_sets[0].changes[0]
        assert isinstance(change, RawSqlChange)
        assert change.sql == "insert into t values (1)"
        assert change.split_statements is False

    def test_update_with_where_and_params(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a"):
                        with update(tableName="t"):
                            column(name="status", value="done")
                            where("id = ?")
                            with whereParams():
                                param(valueNumeric=7)
                """
            }
        )
        change = change_log.change_sets[0].changes[0]
        assert isinstance(change, UpdateDataChange)
        assert change.where == "id = ?"
        assert len(change.where_params) == 1
        assert int(change.where_params[0].value_numeric) == 7

    def test_date_values(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a"):
                        with insert(tableName="t"):
                            column(name="d", valueDate="2024-01-02")
                            column(name="t", valueDate="07:52:04")
                            column(name="ts", valueDate="2024-01-02T07:52:04")
                            column(name="now", valueDate="NOW()")
                """
            }
        )
        change = change_log.change_sets[0].changes[0]
        assert isinstance(change, InsertDataChange)
        assert [c.value_date for c in change.columns] == [
            datetime(2024, 1, 2),
            time(7, 52, 4),
            datetime(2024, 1, 2, 7, 52, 4),
            DatabaseFunction("NOW()"),
        ]

    def test_default_value_date_function(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a"):
                        with createTable(tableName="t"):
                            column(name="created", type="timestamp", defaultValueDate="CURRENT_TIMESTAMP")
                """
            }
        )
        column = change_log.change_sets[0].changes[0].columns[0]
        assert column.default_value_date == DatabaseFunction("CURRENT_TIMESTAMP")

    def test_foreign_key_delete_cascade(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a"):
                        addForeignKeyConstraint(
                            baseTableName="child",
                            baseColumnNames="parent_id",
                            referencedTableName="parent",
                            referencedColumnNames="id",
                            constraintName="fk_child_parent",
                            deleteCascade=True,
                        )
                """
            }
        )
        change = change_log.change_sets[0].changes[0]
        assert isinstance(change, AddForeignKeyConstraintChange)
        assert change.on_delete == "CASCADE"

    def test_unknown_directive_attribute(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'bogus' is not a valid attribute for 'dropTable'"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a"):
                            dropTable(tableName="t", bogus=1)
                    """
                }
            )

    def test_columns_not_allowed(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="columns are not allowed in 'dropTable' changes"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a"):
                            with dropTable(tableName="t"):
                                column(name="c")
                    """
                }
            )

    def test_where_not_allowed(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="where clause is invalid for 'createTable'"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a"):
                            with createTable(tableName="t"):
                                where("1 = 1")
                    """
                }
            )

    def test_where_params_not_allowed(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="whereParams are not allowed in 'insert' changes"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a"):
                            with insert(tableName="t"):
                                with whereParams():
                                    param(value="x")
                    """
                }
            )

    def test_invalid_constraint_attribute(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'colour' is not a valid constraint attribute"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a"):
                            with createTable(tableName="t"):
                                with column(name="c"):
                                    constraints(colour="red")
                    """
                }
            )

    def test_unknown_element_in_change_set(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'frobnicate' is not a valid changeSet element"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a"):
                            frobnicate(tableName="t")
                    """
                }
            )

    def test_known_element_in_wrong_block(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'column' is not a valid changeSet element"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a"):
                            column(name="c")
                    """
                }
            )

    def test_bad_argument_shape(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="invalid arguments for 'where'"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a"):
                            with update(tableName="t"):
                                where("a = 1", "b = 2")
                    """
                }
            )

    def test_failed_change_set_is_not_appended(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    try:
                        with changeSet(id="1", author="a", bogus=1):
                            empty()
                    except Exception:
                        pass
                    try:
                        with changeSet(id="2", author="a"):
                            dropTable(tableName="t", bogus=1)
                    except Exception:
                        pass
                """
            }
        )
        assert change_log.change_sets == []


# ---------------------------------------------------------------------------
# Change-set children
# ---------------------------------------------------------------------------


class TestChangeSetChildren:
    def test_comment_and_check_sums(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a"):
                        comment("creates things")
                        validCheckSum("8:abc")
                        validCheckSum("ANY")
                        empty()
                """
            }
        )
        change_set = change_log.change_sets[0]
        assert change_set.comments == "creates things"
        assert change_set.valid_check_sums == ["8:abc", "ANY"]

    def test_rollback_forms(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="create", author="a"):
                        createTable(tableName="t")
                        with rollback():
                            dropTable(tableName="t")
                    with changeSet(id="raw", author="a"):
                        empty()
                        rollback("drop table t")
                    with changeSet(id="ref", author="a"):
                        empty()
                        rollback(changeSetId="create", changeSetAuthor="a")
                """
            }
        )
        create, raw, ref = change_log.change_sets
        assert isinstance(create.rollback.changes[0], DropTableChange)
        assert isinstance(raw.rollback.changes[0], RawSqlChange)
        assert raw.rollback.changes[0].sql == "drop table t"
        assert isinstance(ref.rollback.changes[0], CreateTableChange)

    def test_rollback_reference_not_found(self, compile_tree):
        with pytest.raises(
            ChangeLogParseError,
            match="Could not find changeSet to use for rollback: other.py::nope::a",
        ):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a"):
                            rollback(changeSetId="nope", changeSetAuthor="a", changeSetPath="other.py")
                    """
                }
            )

    def test_modify_sql(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a"):
                        createTable(tableName="t")
                        with modifySql(dbms="mysql", applyToRollback=True, contextFilter="prod"):
                            append(value=" engine innodb")
                            replace(replace="int", with_="bigint")
                """
            }
        )
        visitors = change_log.change_sets[0].sql_visitors
        assert isinstance(visitors[0], AppendSqlVisitor)
        assert visitors[0].value == " engine innodb"
        assert isinstance(visitors[1], ReplaceSqlVisitor)
        assert visitors[1].with_ == "bigint"
        for visitor in visitors:
            assert visitor.applicable_dbms == {"mysql"}
            assert visitor.apply_to_rollback is True
            assert visitor.context_filter.contexts == ["prod"]

    def test_modify_sql_attribute_validation(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'bogus' is not a supported attribute of the 'modifySql'"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with changeSet(id="1", author="a"):
                            with modifySql(bogus=True):
                                append(value="x")
                    """
                }
            )

    def test_change_set_preconditions(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a"):
                        with preConditions(onFail="MARK_RAN", onFailMessage="already there"):
                            with not_():
                                tableExists(tableName="t")
                        createTable(tableName="t")
                """
            }
        )
        container = change_log.change_sets[0].preconditions
        assert container.on_fail.value == "MARK_RAN"
        assert container.on_fail_message == "already there"
        (not_group,) = container.nested_preconditions
        assert not_group.nested_preconditions[0].table_name == "t"
