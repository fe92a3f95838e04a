"""Tests for repositories, optimistic locking and the unit of work."""

from datetime import timedelta

import pytest
from sqlalchemy import select, text

from buddyflow.domain.assignments.events import AssignmentStarted
from buddyflow.domain.common.exceptions import ConcurrencyConflictError, ErrorKind
from buddyflow.domain.common.value_objects import AssignmentId
from buddyflow.domain.progress.entities.progress import ComponentStatus
from buddyflow.infrastructure.assignments.repositories import FlowAssignmentRepository
from buddyflow.infrastructure.common.unit_of_work import SQLAlchemyUnitOfWork
from buddyflow.infrastructure.flows.repositories import FlowRepository
from buddyflow.infrastructure.progress.repositories import FlowProgressRepository
from buddyflow.infrastructure.snapshots.repositories import FlowSnapshotRepository
from buddyflow.models import FlowAssignment as FlowAssignmentORM
from buddyflow.models import FlowProgress as FlowProgressORM


def _bump_progress_version(db_session) -> None:
    db_session.execute(text("UPDATE flow_progress SET version_id = version_id + 1"))


class TestOptimisticLocking:
    def test_sequential_saves_bump_the_version(self, db_session, assign, flow_factory, now) -> None:
        result = assign(flow_factory())
        initial = db_session.scalar(select(FlowProgressORM.version_id))

        repository = FlowProgressRepository(db_session)
        progress = repository.find_by_assignment_id(result.assignment.id, for_update=True)
        assert progress is not None
        progress.start(now)
        repository.save(progress)
        db_session.commit()

        assert db_session.scalar(select(FlowProgressORM.version_id)) > initial

    def test_stale_progress_write_is_a_conflict(self, db_session, assign, flow_factory, now) -> None:
        result = assign(flow_factory())
        repository = FlowProgressRepository(db_session)
        progress = repository.find_by_assignment_id(result.assignment.id)
        assert progress is not None
        # Keep the row in the identity map so it remembers the version it was read at
        row = db_session.scalars(select(FlowProgressORM)).one()
        _bump_progress_version(db_session)

        progress.start(now)
        with pytest.raises(ConcurrencyConflictError) as exc_info:
            repository.save(progress)

        assert exc_info.value.kind == ErrorKind.CONFLICT
        assert row.assignment_id == result.assignment.id.value

    def test_stale_assignment_write_is_a_conflict(
        self, db_session, assign, flow_factory, now
    ) -> None:
        result = assign(flow_factory())
        repository = FlowAssignmentRepository(db_session)
        assignment = repository.find_by_id(result.assignment.id)
        assert assignment is not None
        # Another writer adds its time first
        db_session.execute(
            text("UPDATE flow_assignments SET time_spent = 10, version_id = version_id + 1")
        )

        assignment.add_time_spent(5, now=now)
        with pytest.raises(ConcurrencyConflictError) as exc_info:
            repository.save(assignment)

        assert exc_info.value.kind == ErrorKind.CONFLICT
        db_session.rollback()

    def test_assignment_saves_bump_the_version(
        self, db_session, assign, flow_factory, now
    ) -> None:
        result = assign(flow_factory())
        initial = db_session.scalar(select(FlowAssignmentORM.version_id))

        for seconds in (10, 5):
            repository = FlowAssignmentRepository(db_session)
            assignment = repository.find_by_id(result.assignment.id)
            assert assignment is not None
            assignment.add_time_spent(seconds, now=now)
            repository.save(assignment)
            db_session.commit()

        stored = FlowAssignmentRepository(db_session).find_by_id(result.assignment.id)
        assert stored is not None
        assert stored.time_spent == 15
        assert db_session.scalar(select(FlowAssignmentORM.version_id)) == initial + 2

    def test_unit_of_work_translates_stale_commits(
        self, db_session, assign, flow_factory
    ) -> None:
        assign(flow_factory())
        row = db_session.scalars(select(FlowProgressORM)).one()
        _bump_progress_version(db_session)
        row.current_step_order = 2

        unit_of_work = SQLAlchemyUnitOfWork(db_session)
        with pytest.raises(ConcurrencyConflictError):
            with unit_of_work:
                unit_of_work.commit()

        # The session was rolled back and is usable again
        assert db_session.scalar(select(FlowProgressORM.current_step_order)) == 1


class TestUnitOfWork:
    def test_events_are_dispatched_after_commit(
        self, db_session, assign, flow_factory, now
    ) -> None:
        result = assign(flow_factory())
        received = []

        def failing_handler(event) -> None:
            raise RuntimeError("mail server down")

        unit_of_work = SQLAlchemyUnitOfWork(db_session, [failing_handler, received.append])
        repository = FlowAssignmentRepository(db_session)
        with unit_of_work:
            assignment = repository.find_by_id(result.assignment.id)
            assert assignment is not None
            assignment.start(now)
            repository.save(assignment)
            unit_of_work.track(assignment)
            unit_of_work.commit()

        assert [type(event) for event in received] == [AssignmentStarted]
        assert assignment.pending_events == []

    def test_rollback_discards_events(self, db_session, assign, flow_factory, now) -> None:
        result = assign(flow_factory())
        received = []
        unit_of_work = SQLAlchemyUnitOfWork(db_session, [received.append])
        repository = FlowAssignmentRepository(db_session)
        assignment = repository.find_by_id(result.assignment.id)
        assert assignment is not None

        with pytest.raises(RuntimeError):
            with unit_of_work:
                assignment.start(now)
                unit_of_work.track(assignment)
                raise RuntimeError("abort")

        assert received == []
        assert assignment.pending_events == []

    def test_tracking_is_by_identity(self, db_session, assign, flow_factory, now) -> None:
        result = assign(flow_factory())
        received = []
        unit_of_work = SQLAlchemyUnitOfWork(db_session, [received.append])
        assignment = FlowAssignmentRepository(db_session).find_by_id(result.assignment.id)
        assert assignment is not None

        assignment.start(now)
        unit_of_work.track(assignment, assignment)
        unit_of_work.commit()

        assert len(received) == 1


class TestAssignmentRepository:
    def test_soft_delete_hides_the_assignment(
        self, db_session, assign, flow_factory, learner
    ) -> None:
        flow = flow_factory()
        result = assign(flow)
        repository = FlowAssignmentRepository(db_session)

        assert repository.soft_delete(result.assignment.id) is True
        db_session.commit()

        assert repository.find_by_id(result.assignment.id) is None
        assert repository.find_by_user(learner.id) == []
        assert repository.count_active_by_user(learner.id) == 0
        assert repository.find_active_by_user_and_flow(learner.id, flow.id) is None
        assert repository.soft_delete(result.assignment.id) is False

    def test_find_by_user_orders_newest_first(
        self, db_session, assign, flow_factory, learner, now
    ) -> None:
        first = assign(flow_factory(title="First")).assignment
        second = assign(flow_factory(title="Second")).assignment
        # Both were assigned in the same second; spread them apart
        row = db_session.get(FlowAssignmentORM, first.id.value)
        assert row is not None
        row.assigned_at = now - timedelta(days=1)
        db_session.commit()
        repository = FlowAssignmentRepository(db_session)

        assert [a.id for a in repository.find_by_user(learner.id)] == [second.id, first.id]

    def test_overdue_candidates(self, db_session, assign, flow_factory, now) -> None:
        soon = assign(flow_factory(title="Soon"), custom_deadline_days=1).assignment
        assign(flow_factory(title="Later"), custom_deadline_days=20)
        repository = FlowAssignmentRepository(db_session)
        probe = soon.deadline + timedelta(hours=1)

        assert [a.id for a in repository.find_overdue_candidates(probe)] == [soon.id]

        flagged = repository.find_by_id(soon.id)
        assert flagged is not None
        flagged.check_deadline(probe)
        repository.save(flagged)
        db_session.commit()

        assert repository.find_overdue_candidates(probe) == []


class TestSnapshotAndProgressStorage:
    def test_snapshot_survives_template_deletion(
        self, db_session, assign, flow_factory
    ) -> None:
        flow = flow_factory()
        result = assign(flow)

        FlowRepository(db_session).delete(flow.id)
        db_session.commit()

        snapshot = FlowSnapshotRepository(db_session).find_by_id(result.snapshot.id)
        assert snapshot is not None
        assert snapshot.original_flow_id == flow.id
        assert snapshot.total_components == 2

    def test_detach_without_snapshot(self, db_session) -> None:
        assert FlowSnapshotRepository(db_session).detach(AssignmentId.generate()) is None

    def test_progress_data_round_trip(self, db_session, assign, flow_factory, now) -> None:
        result = assign(flow_factory())
        article = result.snapshot.steps[0].components[0]
        repository = FlowProgressRepository(db_session)
        progress = repository.find_by_assignment_id(result.assignment.id)
        assert progress is not None

        progress.record_interaction(
            article.id,
            status=ComponentStatus.IN_PROGRESS,
            progress_data={"reading_progress": 0.4, "milestones": ["quarter"], "progress": 40.0},
            time_spent=12.4,
            now=now,
        )
        repository.save(progress)
        db_session.commit()

        stored = repository.find_by_assignment_id(result.assignment.id)
        assert stored is not None
        component = stored.component(article.id)
        assert component is not None
        assert component.status == ComponentStatus.IN_PROGRESS
        assert component.progress_data["milestones"] == ["quarter"]
        assert component.percentage == 40.0
        assert component.time_spent == 12
        assert component.started_at == now
        assert stored.last_activity == now
