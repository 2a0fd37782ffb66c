"""
Unit tests for wire-format validation (common.schema)
"""

import copy
import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.schema import (
    SchemaValidationError,
    format_loc,
    parse_frame_message,
    parse_session_header,
    try_parse_frame_message,
)
from common.types import CombatEventType, Domain, EntityKind


VALID_FRAME = {
    "t": 12.5,
    "entities": [
        {
            "id": "air-eagle-01",
            "kind": "platform",
            "domain": "air",
            "modelId": "f16_faceted",
            "pose": {
                "positionLlaDegM": [34.2, -116.3, 10000],
                "orientationBodyToNedQuat": [0, 0, 0, 1],
            },
            "velocityEcef": [10.0, -3.0, 0.5],
            "metadata": {"callsign": "EAGLE1", "fuel": 0.62, "armed": True},
        }
    ],
    "events": [
        {
            "id": "launch-1",
            "type": "launch",
            "sourceId": "air-eagle-01",
            "positionLlaDegM": [34.2, -116.3, 10000],
            "t": 12.5,
        }
    ],
}


def frame_with(mutate):
    raw = copy.deepcopy(VALID_FRAME)
    mutate(raw)
    return raw


def error_path(raw):
    with pytest.raises(SchemaValidationError) as exc:
        parse_frame_message(raw)
    return exc.value.path, str(exc.value)


class TestParseFrame:
    """parse_frame_message"""

    def test_valid_frame(self):
        frame = parse_frame_message(VALID_FRAME)
        assert frame.t == 12.5
        ent = frame.entities[0]
        assert ent.kind is EntityKind.PLATFORM
        assert ent.domain is Domain.AIR
        assert ent.pose.position_lla_deg_m == (34.2, -116.3, 10000.0)
        assert ent.velocity_ecef == (10.0, -3.0, 0.5)
        assert ent.metadata == {"callsign": "EAGLE1", "fuel": 0.62, "armed": True}
        assert frame.events[0].type is CombatEventType.LAUNCH
        assert frame.events[0].target_id is None

    def test_events_optional(self):
        """A frame without events keeps events as None"""
        frame = parse_frame_message(frame_with(lambda r: r.pop("events")))
        assert frame.events is None

    def test_wire_round_trip(self):
        """to_dict reproduces the camelCase wire shape"""
        frame = parse_frame_message(VALID_FRAME)
        assert parse_frame_message(frame.to_dict()).to_dict() == frame.to_dict()
        assert frame.to_dict()["entities"][0]["modelId"] == "f16_faceted"

    def test_parse_does_not_alias_input(self):
        """Mutating the raw dict after parsing leaves the parsed frame alone"""
        raw = copy.deepcopy(VALID_FRAME)
        frame = parse_frame_message(raw)
        raw["entities"][0]["metadata"]["callsign"] = "CHANGED"
        assert frame.entities[0].metadata["callsign"] == "EAGLE1"

    def test_not_an_object(self):
        path, _ = error_path([1, 2, 3])
        assert path == "frame"

    def test_missing_t(self):
        path, msg = error_path(frame_with(lambda r: r.pop("t")))
        assert path == "frame.t"
        assert msg.startswith("frame.t is required")

    def test_t_checked_before_entities(self):
        """With both t and entities broken, t is reported"""
        def mutate(r):
            r["t"] = "soon"
            r["entities"] = None
        path, _ = error_path(frame_with(mutate))
        assert path == "frame.t"

    def test_entities_not_array(self):
        path, _ = error_path(frame_with(lambda r: r.__setitem__("entities", {})))
        assert path == "frame.entities"

    def test_events_not_array(self):
        path, _ = error_path(frame_with(lambda r: r.__setitem__("events", "boom")))
        assert path == "frame.events"

    def test_boolean_is_not_a_number(self):
        """JSON true is rejected where a coordinate is required"""
        def mutate(r):
            r["entities"][0]["pose"]["positionLlaDegM"][1] = True
        path, msg = error_path(frame_with(mutate))
        assert path == "frame.entities[0].pose.positionLlaDegM[1]"
        assert "must be numeric" in msg

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), "34.2", None])
    def test_non_finite_or_non_numeric(self, bad):
        def mutate(r):
            r["entities"][0]["pose"]["positionLlaDegM"][0] = bad
        path, _ = error_path(frame_with(mutate))
        assert path == "frame.entities[0].pose.positionLlaDegM[0]"

    def test_wrong_tuple_length(self):
        def mutate(r):
            r["entities"][0]["pose"]["orientationBodyToNedQuat"] = [0, 0, 1]
        path, msg = error_path(frame_with(mutate))
        assert path == "frame.entities[0].pose.orientationBodyToNedQuat"
        assert "4-tuple" in msg

    def test_unknown_kind(self):
        def mutate(r):
            r["entities"][0]["kind"] = "vehicle"
        path, msg = error_path(frame_with(mutate))
        assert path == "frame.entities[0].kind"
        assert "platform|weapon" in msg

    def test_unknown_domain(self):
        def mutate(r):
            r["entities"][0]["domain"] = "underground"
        path, _ = error_path(frame_with(mutate))
        assert path == "frame.entities[0].domain"

    def test_empty_id(self):
        def mutate(r):
            r["entities"][0]["id"] = ""
        path, _ = error_path(frame_with(mutate))
        assert path == "frame.entities[0].id"

    def test_bad_metadata_value(self):
        def mutate(r):
            r["entities"][0]["metadata"]["nested"] = {"a": 1}
        path, _ = error_path(frame_with(mutate))
        assert path == "frame.entities[0].metadata.nested"

    def test_bad_event_type(self):
        def mutate(r):
            r["events"][0]["type"] = "explosion"
        path, _ = error_path(frame_with(mutate))
        assert path == "frame.events[0].type"

    def test_bad_event_target_id(self):
        def mutate(r):
            r["events"][0]["targetId"] = 7
        path, _ = error_path(frame_with(mutate))
        assert path == "frame.events[0].targetId"

    def test_deep_tuple_element_path(self):
        """A bad coordinate on the third entity names the entity and the element"""
        def mutate(r):
            second = copy.deepcopy(r["entities"][0])
            third = copy.deepcopy(r["entities"][0])
            second["id"] = "air-eagle-02"
            third["id"] = "air-eagle-03"
            third["pose"]["positionLlaDegM"][1] = float("inf")
            r["entities"] += [second, third]
        path, msg = error_path(frame_with(mutate))
        assert path == "frame.entities[2].pose.positionLlaDegM[1]"
        assert msg == "frame.entities[2].pose.positionLlaDegM[1] must be numeric"

    def test_integer_coordinates_accepted(self):
        """Strict numbers still take JSON integers"""
        frame = parse_frame_message(VALID_FRAME)
        assert frame.entities[0].pose.position_lla_deg_m[2] == 10000.0
        assert isinstance(frame.entities[0].pose.orientation_body_to_ned_quat[3], float)

    def test_integer_metadata_kept(self):
        raw = frame_with(lambda r: r["entities"][0]["metadata"].__setitem__("rounds", 4))
        assert parse_frame_message(raw).entities[0].metadata["rounds"] == 4

    def test_missing_pose_field(self):
        def mutate(r):
            r["entities"][0]["pose"].pop("orientationBodyToNedQuat")
        path, msg = error_path(frame_with(mutate))
        assert path == "frame.entities[0].pose.orientationBodyToNedQuat"
        assert msg.endswith("is required")

    def test_velocity_length(self):
        def mutate(r):
            r["entities"][0]["velocityEcef"] = [1.0, 2.0]
        path, msg = error_path(frame_with(mutate))
        assert path == "frame.entities[0].velocityEcef"
        assert "3-tuple" in msg

    def test_error_is_value_error(self):
        """Callers that only know ValueError still catch validation failures"""
        with pytest.raises(ValueError):
            parse_frame_message({})


class TestTryParse:
    """try_parse_frame_message"""

    def test_ok(self):
        res = try_parse_frame_message(VALID_FRAME)
        assert res.ok
        assert res.value is not None
        assert res.error is None

    def test_error(self):
        res = try_parse_frame_message({"t": 1})
        assert not res.ok
        assert res.value is None
        assert res.error.path == "frame.entities"


class TestSessionHeader:
    """parse_session_header"""

    def test_valid(self):
        header = parse_session_header({"protocolVersion": "1.0", "scenarioId": "demo"})
        assert header.scenario_id == "demo"
        assert header.to_dict() == {"protocolVersion": "1.0", "scenarioId": "demo"}

    def test_scenario_optional(self):
        assert parse_session_header({"protocolVersion": "1.0"}).scenario_id is None

    @pytest.mark.parametrize("version", ["2.0", 1.0, None])
    def test_unsupported_version(self, version):
        with pytest.raises(SchemaValidationError) as exc:
            parse_session_header({"protocolVersion": version})
        assert exc.value.path == "header.protocolVersion"

    def test_scenario_must_be_string(self):
        with pytest.raises(SchemaValidationError) as exc:
            parse_session_header({"protocolVersion": "1.0", "scenarioId": 3})
        assert exc.value.path == "header.scenarioId"

    def test_not_an_object(self):
        with pytest.raises(SchemaValidationError) as exc:
            parse_session_header("1.0")
        assert exc.value.path == "header"


class TestErrorPaths:
    """SchemaValidationError and loc formatting"""

    def test_format_loc(self):
        assert format_loc("frame", ("entities", 2, "pose", "positionLlaDegM", 1)) == "frame.entities[2].pose.positionLlaDegM[1]"
        assert format_loc("header", ()) == "header"

    def test_in_context_prefix(self):
        """Batch context is prepended without repeating the path"""
        err = SchemaValidationError("frame.t", "must be numeric").in_context("Invalid frame at index 3")
        assert str(err) == "Invalid frame at index 3: frame.t must be numeric"
        assert err.path == "frame.t"
