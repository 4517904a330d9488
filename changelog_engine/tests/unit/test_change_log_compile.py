"""Compile tests for the top level of a change-log script."""

from __future__ import annotations

import pytest

from changelog_engine.errors import ChangeLogParseError, ResourceNotFoundError
from changelog_engine.models.options import ObjectQuotingStrategy
from changelog_engine.models.parameters import ChangeLogParameters
from changelog_engine.models.preconditions import DbmsPrecondition, OrPrecondition, SqlPrecondition

# ---------------------------------------------------------------------------
# Script structure
# ---------------------------------------------------------------------------


class TestScriptStructure:
    def test_empty_change_log(self, compile_tree):
        change_log = compile_tree({"changelog.py": "with databaseChangeLog():\n    pass\n"})
        assert change_log.change_sets == []
        assert change_log.physical_file_path == "changelog.py"
        assert change_log.logical_file_path is None

    def test_change_log_attributes(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog(
                    logicalFilePath="db/main",
                    context="old",
                    contextFilter="test",
                    objectQuotingStrategy="QUOTE_ALL_OBJECTS",
                ):
                    pass
                """
            }
        )
        assert change_log.logical_file_path == "db/main"
        assert change_log.file_path == "db/main"
        assert change_log.context_filter.contexts == ["test"]
        assert change_log.object_quoting_strategy is ObjectQuotingStrategy.QUOTE_ALL_OBJECTS

    def test_unsupported_change_log_attribute(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'bogus' is not a supported attribute"):
            compile_tree({"changelog.py": "with databaseChangeLog(bogus=1):\n    pass\n"})

    def test_unrecognized_root_element(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="Unrecognized root element changeSet"):
            compile_tree(
                {
                    "changelog.py": """
                    with changeSet(id="1", author="a"):
                        empty()
                    """
                }
            )

    def test_unknown_root_name(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="Unrecognized root element databaseChangelog"):
            compile_tree({"changelog.py": "with databaseChangelog():\n    pass\n"})

    def test_unknown_change_log_element(self, compile_tree):
        with pytest.raises(
            ChangeLogParseError,
            match="DatabaseChangeLog: 'createTable' is not a valid element of a DatabaseChangeLog",
        ):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        createTable(tableName="t")
                    """
                }
            )

    def test_block_element_must_be_entered(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'changeSet' must be used as a 'with' block"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        changeSet(id="1", author="a")
                    """
                }
            )

    def test_user_exception_is_wrapped(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="Error compiling changelog.py: ValueError: boom"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        raise ValueError("boom")
                    """
                }
            )

    def test_syntax_error(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="invalid syntax at line 1"):
            compile_tree({"changelog.py": "with databaseChangeLog(:\n"})

    def test_missing_root_file(self, compile_tree):
        with pytest.raises(ResourceNotFoundError):
            compile_tree({"other.py": "with databaseChangeLog():\n    pass\n"})

    def test_plain_python_is_allowed(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                tables = ["a", "b", "c"]
                with databaseChangeLog():
                    for index, name in enumerate(tables):
                        with changeSet(id=f"create-{name}", author="gen"):
                            createTable(tableName=name)
                """
            }
        )
        assert [cs.id for cs in change_log.change_sets] == ["create-a", "create-b", "create-c"]

    def test_helper_function_sees_script_names(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                AUTHOR = "me"

                def make(name):
                    with changeSet(id=name, author=AUTHOR):
                        dropTable(tableName=table)

                with databaseChangeLog():
                    property(name="table", value="monkey")
                    make("x")
                """
            }
        )
        (change_set,) = change_log.change_sets
        assert change_set.id == "x"
        assert change_set.author == "me"
        assert change_set.changes[0].table_name == "monkey"

    def test_helper_function_unknown_name(self, compile_tree):
        with pytest.raises(
            ChangeLogParseError,
            match="'AUTHOR' is not a valid element of a DatabaseChangeLog",
        ):
            compile_tree(
                {
                    "changelog.py": """
                    def make(name):
                        with changeSet(id=name, author=AUTHOR):
                            dropTable(tableName="t")

                    with databaseChangeLog():
                        make("x")
                    """
                }
            )


# ---------------------------------------------------------------------------
# property
# ---------------------------------------------------------------------------


class TestProperty:
    def test_property_used_in_later_elements(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    property(name="table", value="monkey")
                    with changeSet(id="1", author="a"):
                        dropTable(tableName="${table}")
                """
            }
        )
        assert change_log.change_sets[0].changes[0].table_name == "monkey"

    def test_property_readable_as_bare_name(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    property(name="table", value="monkey")
                    with changeSet(id="1", author="a"):
                        dropTable(tableName=table)
                """
            }
        )
        assert change_log.change_sets[0].changes[0].table_name == "monkey"

    def test_host_parameters(self, compile_tree):
        parameters = ChangeLogParameters()
        parameters.set("schema", "app")
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with changeSet(id="1", author="a"):
                        dropTable(schemaName="${schema}", tableName="t")
                """
            },
            parameters=parameters,
        )
        assert change_log.change_sets[0].changes[0].schema_name == "app"

    def test_property_filters(self, compile_tree):
        parameters = ChangeLogParameters(database="postgresql", contexts="test")
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    property(name="type", value="int")
                    property(name="type", value="number", dbms="oracle")
                    property(name="env", value="test-env", context="test")
                    property(name="env", value="prod-env", context="prod")
                    with changeSet(id="1", author="a"):
                        with createTable(tableName="${env}"):
                            column(name="id", type="${type}")
                """
            },
            parameters=parameters,
        )
        change = change_log.change_sets[0].changes[0]
        assert change.table_name == "test-env"
        assert change.columns[0].type == "int"

    def test_property_file(self, compile_tree):
        change_log = compile_tree(
            {
                "db/changelog.py": """
                with databaseChangeLog():
                    property(file="db.properties", relativeToChangelogFile=True)
                    with changeSet(id="1", author="${owner}"):
                        dropTable(tableName="${table}")
                """,
                "db/db.properties": """
                # comment
                table=monkey
                owner: ops
                """,
            },
            root="db/changelog.py",
        )
        change_set = change_log.change_sets[0]
        assert change_set.author == "ops"
        assert change_set.changes[0].table_name == "monkey"

    def test_missing_property_file(self, compile_tree):
        with pytest.raises(ResourceNotFoundError):
            compile_tree({"changelog.py": 'with databaseChangeLog():\n    property(file="nope.properties")\n'})

    def test_missing_property_file_tolerated(self, compile_tree):
        change_log = compile_tree(
            {"changelog.py": 'with databaseChangeLog():\n    property(file="nope.properties", errorIfMissing=False)\n'}
        )
        assert change_log.change_sets == []

    def test_unresolved_property_in_file_path(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'\\$\\{nope\\}.properties' contains an invalid property"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        property(file="${nope}.properties", errorIfMissing=False)
                    """
                }
            )

    def test_property_requires_name(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="requires a name or a file"):
            compile_tree({"changelog.py": 'with databaseChangeLog():\n    property(value="x")\n'})

    def test_unsupported_property_attribute(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'scope' is not a supported attribute of the 'property'"):
            compile_tree({"changelog.py": 'with databaseChangeLog():\n    property(name="a", value="b", scope="x")\n'})

    def test_global_keyword_spelling(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    property(name="table", value="local_t", global_=False)
                    with changeSet(id="1", author="a"):
                        dropTable(tableName="${table}")
                """
            }
        )
        assert change_log.change_sets[0].changes[0].table_name == "local_t"
        parameter = change_log.change_log_parameters.find_parameter("table", change_log)
        assert parameter.global_ is False


# ---------------------------------------------------------------------------
# preConditions
# ---------------------------------------------------------------------------


class TestChangeLogPreconditions:
    def test_preconditions_block(self, compile_tree):
        change_log = compile_tree(
            {
                "changelog.py": """
                with databaseChangeLog():
                    with preConditions(onFail="WARN", onError="HALT", onUpdateSql="TEST"):
                        with or_():
                            dbms(type="postgresql")
                            dbms(type="h2")
                        sqlCheck("select count(*) from t", expectedResult="0")
                """
            }
        )
        container = change_log.preconditions
        assert container.on_fail.value == "WARN"
        assert container.on_error.value == "HALT"
        assert container.on_sql_output.value == "TEST"
        or_group, sql_check = container.nested_preconditions
        assert isinstance(or_group, OrPrecondition)
        assert all(isinstance(p, DbmsPrecondition) for p in or_group.nested_preconditions)
        assert isinstance(sql_check, SqlPrecondition)
        assert sql_check.sql == "select count(*) from t"
        assert sql_check.expected_result == "0"

    def test_invalid_precondition_attribute(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'onWhatever' is not a valid attribute for preConditions"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with preConditions(onWhatever="x"):
                            dbms(type="h2")
                    """
                }
            )

    def test_invalid_option_value(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'onFail' is not a valid attribute for preConditions"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with preConditions(onFail="IGNORE_IT"):
                            dbms(type="h2")
                    """
                }
            )

    def test_unknown_precondition(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'dropTable' is not a valid precondition"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with preConditions():
                            dropTable(tableName="t")
                    """
                }
            )

    def test_invalid_precondition_record_attribute(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'colour' is not a valid attribute for 'tableExists'"):
            compile_tree(
                {
                    "changelog.py": """
                    with databaseChangeLog():
                        with preConditions():
                            tableExists(tableName="t", colour="red")
                    """
                }
            )


# ---------------------------------------------------------------------------
# removeChangeSetProperty
# ---------------------------------------------------------------------------


class TestRemoveChangeSetProperty:
    SCRIPT = """
    with databaseChangeLog():
        removeChangeSetProperty(change="addColumn", dbms="mysql, h2", remove="afterColumn")
    """

    def test_applies_for_matching_database(self, compile_tree):
        change_log = compile_tree({"changelog.py": self.SCRIPT}, parameters=ChangeLogParameters(database="h2"))
        (visitor,) = change_log.change_visitors
        assert visitor.change == "addColumn"
        assert visitor.dbms == {"mysql", "h2"}
        assert visitor.remove == "afterColumn"

    def test_ignored_for_other_database(self, compile_tree):
        change_log = compile_tree({"changelog.py": self.SCRIPT}, parameters=ChangeLogParameters(database="oracle"))
        assert change_log.change_visitors == []

    def test_ignored_without_database(self, compile_tree):
        change_log = compile_tree({"changelog.py": self.SCRIPT})
        assert change_log.change_visitors == []

    def test_requires_remove(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="requires a remove attribute"):
            compile_tree(
                {
                    "changelog.py": (
                        "with databaseChangeLog():\n"
                        '    removeChangeSetProperty(change="addColumn", dbms="h2")\n'
                    )
                }
            )

    def test_requires_known_change(self, compile_tree):
        with pytest.raises(ChangeLogParseError, match="'bogus' is not a valid change"):
            compile_tree(
                {
                    "changelog.py": (
                        "with databaseChangeLog():\n"
                        '    removeChangeSetProperty(change="bogus", dbms="h2", remove="x")\n'
                    )
                }
            )
