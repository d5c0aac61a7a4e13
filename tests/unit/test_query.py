"""Tests for condition parsing and query compilation."""

import json

import pytest

from bamb.core.exceptions import PermissionDeniedError
from bamb.core.query import Operator, Order, QueryCompiler, parse_conditions, parse_selections
from bamb.modules.inventory.service import ELEMENT_SCHEMA
from tests.factories import create_element, create_element_type, create_project

READ_ALL = frozenset({"*"})


def condition(field, operator, value=None):
    return json.dumps({"field": field, "expression": {"operator": operator, "value": value}})


class TestParsing:

    def test_json_strings_and_dicts(self):
        parsed = parse_conditions([
            condition("name", "EQUAL", "Beam"),
            {"field": "reusePotential", "expression": {"operator": "greater", "value": 0.5}},
        ])
        assert [(c.field, c.operator, c.value) for c in parsed] == [
            ("name", Operator.EQUAL, "Beam"),
            ("reusePotential", Operator.GREATER, 0.5),
        ]

    def test_malformed_input_is_dropped(self):
        parsed = parse_conditions([
            "{not json",
            json.dumps({"field": "name"}),
            json.dumps({"field": "name", "expression": {"operator": "SOUNDS_LIKE", "value": "x"}}),
            42,
            condition("name", "LIKE", "ea"),
        ])
        assert [c.field for c in parsed] == ["name"]

    def test_selection_accepts_legacy_ordering_key(self):
        parsed = parse_selections([
            json.dumps({"field": "name", "ordering": "desc"}),
            {"field": "uid"},
        ])
        assert [(s.field, s.order) for s in parsed] == [("name", Order.DESC), ("uid", Order.ASC)]

    def test_single_json_array(self):
        raw = json.dumps([{"field": "name", "order": "ASC"}, {"field": "uid", "order": "DESC"}])
        assert len(parse_selections(raw)) == 2


class TestQueryCompiler:

    @pytest.fixture
    def project(self, db_session):
        return create_project(db_session, owner_id=1)

    @pytest.fixture
    def elements(self, db_session, project):
        beam_type = create_element_type(db_session, project=project, name="Beams")
        return [
            create_element(db_session, project=project, name="Oak beam", reuse_potential=0.9,
                           element_type=beam_type, materials=2),
            create_element(db_session, project=project, name="Steel column", reuse_potential=0.7),
            create_element(db_session, project=project, name="Brick wall", reuse_potential=0.2),
        ]

    def fetch(self, db_session, project, conditions=None, selections=None, allowed=READ_ALL, **kwargs):
        compiled = QueryCompiler(ELEMENT_SCHEMA).compile(
            conditions, selections, allowed, scope={"projectId": project.id}
        )
        return compiled.fetch(db_session, **kwargs), compiled.count(db_session)

    def test_permitted_condition_filters_rows(self, db_session, project, elements):
        rows, total = self.fetch(
            db_session, project,
            [condition("reusePotential", "GREATER_OR_EQUAL", 0.7)],
            allowed=frozenset({"uid", "reusePotential"}),
        )
        assert sorted(e.name for e in rows) == ["Oak beam", "Steel column"]
        assert all(e.reuse_potential >= 0.7 for e in rows)
        assert total == 2

    def test_forbidden_condition_is_rejected_before_querying(self, project):
        compiler = QueryCompiler(ELEMENT_SCHEMA)
        with pytest.raises(PermissionDeniedError) as exc_info:
            compiler.compile(
                [condition("reusePotential", "GREATER_OR_EQUAL", 0.7)],
                None,
                frozenset({"uid", "name"}),
                scope={"projectId": project.id},
            )
        assert exc_info.value.message_code == "queryAttributeNotAllowed"
        assert exc_info.value.message_data == {"field": "reusePotential"}

    def test_negated_attribute_cannot_be_queried(self):
        with pytest.raises(PermissionDeniedError):
            QueryCompiler(ELEMENT_SCHEMA).compile(
                [condition("hazardAssessment", "EQUAL", "overall")],
                allowed=frozenset({"*", "!hazardAssessment"}),
            )

    def test_forbidden_selection_is_rejected(self):
        with pytest.raises(PermissionDeniedError):
            QueryCompiler(ELEMENT_SCHEMA).compile(
                None, [{"field": "reusePotential", "order": "DESC"}], frozenset({"uid", "name"})
            )

    def test_forbidden_relation_selection_is_rejected(self):
        with pytest.raises(PermissionDeniedError) as exc_info:
            QueryCompiler(ELEMENT_SCHEMA).compile(
                None, [{"field": "circularities", "order": "DESC"}], frozenset({"uid", "name", "materials"})
            )
        assert exc_info.value.message_code == "queryAttributeNotAllowed"
        assert exc_info.value.message_data == {"field": "circularities"}

    def test_permitted_relation_selection_is_not_ordered(self, db_session, project, elements):
        rows, total = self.fetch(db_session, project, None, [{"field": "materials", "order": "DESC"}])
        assert total == 3
        assert [e.uid for e in rows] == sorted(e.uid for e in elements)

    def test_unknown_fields_are_ignored(self, db_session, project, elements):
        rows, total = self.fetch(
            db_session, project,
            [condition("colour", "EQUAL", "red")],
            [{"field": "colour"}],
            allowed=frozenset({"uid"}),
        )
        assert total == 3

    def test_equal_on_free_text_matches_substring(self, db_session, project, elements):
        rows, _ = self.fetch(db_session, project, [condition("name", "EQUAL", "BEAM")])
        assert [e.name for e in rows] == ["Oak beam"]

    def test_equal_on_uuid_is_exact(self, db_session, project, elements):
        uid = elements[1].uid
        rows, _ = self.fetch(db_session, project, [condition("uid", "EQUAL", uid)])
        assert [e.uid for e in rows] == [uid]

    def test_equal_on_enum_value_is_exact(self, db_session, project, elements):
        rows, _ = self.fetch(db_session, project, [condition("reuseDecision", "EQUAL", "undefined")])
        assert len(rows) == 3

    def test_in_wraps_scalars(self, db_session, project, elements):
        rows, _ = self.fetch(db_session, project, [condition("name", "IN", "Brick wall")])
        assert [e.name for e in rows] == ["Brick wall"]

    def test_list_value_for_scalar_operator_is_dropped(self, db_session, project, elements):
        _, total = self.fetch(db_session, project, [condition("reusePotential", "GREATER", [1, 2])])
        assert total == 3

    @pytest.mark.parametrize("operator", ["EQUAL", "NOT_EQUAL"])
    def test_list_value_for_equality_is_dropped(self, db_session, project, elements, operator):
        rows, total = self.fetch(db_session, project, [condition("reusePotential", operator, [0.7, 0.8])])
        assert total == 3
        assert len(rows) == 3

    def test_object_value_for_equality_is_dropped(self, db_session, project, elements):
        _, total = self.fetch(db_session, project, [condition("name", "EQUAL", {"contains": "oak"})])
        assert total == 3

    def test_nested_items_in_list_are_dropped(self, db_session, project, elements):
        rows, _ = self.fetch(
            db_session, project, [condition("name", "IN", ["Brick wall", ["Oak beam"], {"name": "x"}])]
        )
        assert [e.name for e in rows] == ["Brick wall"]

    def test_is_null(self, db_session, project, elements):
        rows, _ = self.fetch(db_session, project, [condition("elementTypeUid", "IS_NOT_NULL")])
        assert [e.name for e in rows] == ["Oak beam"]

    def test_relation_conditions_join_without_duplicates(self, db_session, project, elements):
        rows, total = self.fetch(
            db_session, project,
            [condition("materials.name", "LIKE", "material"), condition("elementType.name", "EQUAL", "beams")],
        )
        assert [e.name for e in rows] == ["Oak beam"]
        assert total == 1

    def test_relation_field_requires_relation_grant(self):
        with pytest.raises(PermissionDeniedError):
            QueryCompiler(ELEMENT_SCHEMA).compile(
                [condition("materials.name", "LIKE", "oak")], allowed=frozenset({"uid", "name"})
            )
        QueryCompiler(ELEMENT_SCHEMA).compile(
            [condition("materials.name", "LIKE", "oak")], allowed=frozenset({"materials.name"})
        )

    def test_ordering_and_paging(self, db_session, project, elements):
        selections = [{"field": "reusePotential", "order": "DESC"}]
        first, total = self.fetch(db_session, project, None, selections, offset=0, size=2)
        second, _ = self.fetch(db_session, project, None, selections, offset=2, size=2)

        assert total == 3
        assert [e.name for e in first] == ["Oak beam", "Steel column"]
        assert [e.name for e in second] == ["Brick wall"]

    def test_default_order_is_primary_key(self, db_session, project, elements):
        rows, _ = self.fetch(db_session, project)
        assert [e.uid for e in rows] == sorted(e.uid for e in elements)

    def test_scope_limits_rows_to_project(self, db_session, project, elements):
        other = create_project(db_session, owner_id=2)
        create_element(db_session, project=other, name="Oak beam")
        rows, total = self.fetch(db_session, project, [condition("name", "EQUAL", "oak")])
        assert total == 1
        assert rows[0].project_id == project.id

    def test_unknown_scope_field_is_a_programming_error(self):
        with pytest.raises(ValueError):
            QueryCompiler(ELEMENT_SCHEMA).compile(scope={"tenantId": 1})
