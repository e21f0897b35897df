"""
Tests for workflow events.
"""

import pytest
from pydantic import ValidationError

from refineflow.workflow import BaseEvent, Event, StartEvent, StopEvent, define_event


class TestBuiltinEvents:
    """Tests for the conventional event kinds."""

    def test_start_event_positional_input(self) -> None:
        event = StartEvent("pirates")

        assert event.input == "pirates"
        assert event.kind == "StartEvent"

    def test_start_event_input_keyword(self) -> None:
        assert StartEvent(input={"topic": "cats"}).input == {"topic": "cats"}

    def test_start_event_collects_loose_keywords(self) -> None:
        event = StartEvent(topic="cats", audience="kids")

        assert event.input == {"topic": "cats", "audience": "kids"}

    def test_start_event_without_input(self) -> None:
        assert StartEvent().input is None

    def test_stop_event_result(self) -> None:
        assert StopEvent("done").result == "done"
        assert StopEvent(result=42).result == 42

    def test_generic_event_data(self) -> None:
        event = Event(data={"x": 1})

        assert event.payload == {"data": {"x": 1}}

    def test_events_are_immutable(self) -> None:
        event = StopEvent("done")

        with pytest.raises(ValidationError):
            event.result = "changed"

    def test_events_get_unique_ids(self) -> None:
        ids = {StartEvent("x").id for _ in range(50)}

        assert len(ids) == 50

    def test_str_names_kind_and_id(self) -> None:
        event = StartEvent("x")

        assert str(event) == f"StartEvent(id={event.id})"


class TestDefineEvent:
    """Tests for defining event kinds at runtime."""

    def test_defines_new_kind(self) -> None:
        JokeEvent = define_event("JokeEvent", joke=(str, ...))

        event = JokeEvent(joke="knock knock")

        assert isinstance(event, BaseEvent)
        assert event.kind == "JokeEvent"
        assert event.payload == {"joke": "knock knock"}

    def test_required_fields_are_validated(self) -> None:
        JokeEvent = define_event("JokeEvent", joke=(str, ...))

        with pytest.raises(ValidationError):
            JokeEvent()

    def test_defaults(self) -> None:
        Tick = define_event("Tick", count=(int, 0))

        assert Tick().count == 0

    def test_field_called_name(self) -> None:
        Greeting = define_event("Greeting", name=(str, ...))

        assert Greeting(name="Ada").name == "Ada"

    def test_defined_events_are_immutable(self) -> None:
        JokeEvent = define_event("JokeEvent", joke=(str, ...))
        event = JokeEvent(joke="a")

        with pytest.raises(ValidationError):
            event.joke = "b"

    def test_extends_custom_base(self) -> None:
        Special = define_event("Special", __base__=StopEvent, reason=(str, ""))

        event = Special(result=1, reason="because")

        assert isinstance(event, StopEvent)
        assert event.result == 1

    def test_rejects_non_event_base(self) -> None:
        with pytest.raises(TypeError):
            define_event("Broken", __base__=dict)
