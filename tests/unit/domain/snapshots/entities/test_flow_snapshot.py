"""Tests for the frozen FlowSnapshot entities."""

from dataclasses import FrozenInstanceError
from datetime import UTC, datetime

import pytest

from buddyflow.domain.common.exceptions import InvariantViolationError
from buddyflow.domain.common.value_objects import (
    AssignmentId,
    ComponentSnapshotId,
    ComponentType,
    FlowId,
    FlowSnapshotId,
    StepSnapshotId,
)
from buddyflow.domain.snapshots.entities.flow_snapshot import (
    ComponentSnapshot,
    FlowSnapshot,
    FlowStepSnapshot,
)


def _component(order: int, type: str = "article") -> ComponentSnapshot:
    return ComponentSnapshot(id=ComponentSnapshotId.generate(), order=order, type=type)


def _step(order: int, *components: ComponentSnapshot) -> FlowStepSnapshot:
    return FlowStepSnapshot(
        id=StepSnapshotId.generate(), order=order, title=f"Step {order}", components=components
    )


def _snapshot(*steps: FlowStepSnapshot, **kwargs) -> FlowSnapshot:
    return FlowSnapshot(
        id=FlowSnapshotId.generate(),
        title="Onboarding",
        original_flow_id=FlowId.generate(),
        original_flow_version="1.0.0",
        created_at=datetime(2026, 3, 2, tzinfo=UTC),
        steps=steps,
        **kwargs,
    )


class TestComponentSnapshot:
    def test_data_is_copied(self) -> None:
        data = {"content": {"text": "Hi"}}
        component = ComponentSnapshot(
            id=ComponentSnapshotId.generate(), order=1, type="article", data=data
        )
        data["content"]["text"] = "Changed"
        assert component.data == {"content": {"text": "Hi"}}

    def test_is_frozen(self) -> None:
        with pytest.raises(FrozenInstanceError):
            _component(1).order = 2  # type: ignore[misc]

    def test_known_type(self) -> None:
        assert _component(1, "quiz").known_type == ComponentType.QUIZ
        assert _component(1, "checklist").known_type is None


class TestFlowSnapshot:
    def test_steps_and_components_are_sorted(self) -> None:
        snapshot = _snapshot(_step(3), _step(1, _component(2), _component(1)))

        assert [s.order for s in snapshot.steps] == [1, 3]
        assert [c.order for c in snapshot.steps[0].components] == [1, 2]
        assert snapshot.first_step is snapshot.steps[0]
        assert snapshot.total_components == 2

    def test_duplicate_orders(self) -> None:
        with pytest.raises(InvariantViolationError):
            _snapshot(_step(1), _step(1))
        with pytest.raises(InvariantViolationError):
            _step(1, _component(1), _component(1))

    def test_navigation(self) -> None:
        first, third = _step(1), _step(3)
        snapshot = _snapshot(first, third)

        assert snapshot.step_by_order(3) is third
        assert snapshot.step_by_id(first.id) is first
        assert snapshot.next_step_after(1) is third
        assert snapshot.next_step_after(3) is None

    def test_find_component(self) -> None:
        component = _component(1)
        step = _step(2, component)
        snapshot = _snapshot(_step(1), step)

        assert snapshot.find_component(component.id) == (step, component)
        assert snapshot.find_component(ComponentSnapshotId.generate()) is None

    def test_detached_drops_the_assignment(self) -> None:
        snapshot = _snapshot(_step(1), assignment_id=AssignmentId.generate())

        detached = snapshot.detached()

        assert detached.assignment_id is None
        assert detached.id == snapshot.id
        assert snapshot.assignment_id is not None

    def test_structure_omits_identifiers(self) -> None:
        snapshot = _snapshot(_step(1, _component(1)))

        structure = snapshot.to_structure()

        assert "id" not in structure
        assert structure["steps"][0]["components"][0]["type"] == "article"
