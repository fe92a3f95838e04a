"""Pytest configuration and fixtures."""

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import buddyflow.models  # noqa: F401
from buddyflow.application.assignments.use_cases.assign_flow_use_case import (
    AssignFlowInput,
    AssignFlowResult,
)
from buddyflow.core import Container
from buddyflow.database import Base
from buddyflow.domain.flows.entities.flow import ComponentDefinition, Flow, FlowStep
from buddyflow.domain.identity.entities.user import User, UserRole
from buddyflow.infrastructure.flows.repositories import FlowRepository
from buddyflow.infrastructure.identity.repositories import UserRepository

# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

# Create test engine
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

ARTICLE_DATA: dict[str, Any] = {
    "content": {
        "text": "Welcome to the team. This page explains how we ship code. " * 10,
        "estimatedReadTime": 2,
    }
}

TASK_DATA: dict[str, Any] = {
    "content": {
        "instruction": "Name the capital of France",
        "correctAnswer": "Paris",
        "hint": "It is called the city of light",
        "maxAttempts": 3,
    }
}

QUIZ_DATA: dict[str, Any] = {
    "content": {
        "questions": [
            {
                "id": "q1",
                "question": "Which branch do we deploy from?",
                "options": [
                    {"id": "a", "text": "main", "isCorrect": True},
                    {"id": "b", "text": "develop"},
                ],
            },
            {
                "id": "q2",
                "question": "Who reviews pull requests?",
                "options": [
                    {"id": "a", "text": "Nobody"},
                    {"id": "b", "text": "A teammate", "isCorrect": True},
                ],
            },
        ],
        "settings": {"passingScore": 50},
    }
}

VIDEO_DATA: dict[str, Any] = {
    "content": {"videoUrl": "https://videos.example.com/onboarding.mp4", "duration": 100}
}


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    # Create all tables
    Base.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def container(db_session: Session) -> Generator[Container, None, None]:
    """Dependency container bound to the test session."""
    test_container = Container()
    test_container.db.override(db_session)
    yield test_container
    test_container.db.reset_override()


@pytest.fixture
def now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


@pytest.fixture
def user_factory(db_session: Session) -> Callable[..., User]:
    def _create(name: str, role: UserRole = UserRole.USER, is_active: bool = True) -> User:
        user = User.create(name, role)
        user.is_active = is_active
        UserRepository(db_session).save(user)
        db_session.commit()
        return user

    return _create


@pytest.fixture
def learner(user_factory: Callable[..., User]) -> User:
    return user_factory("Lena Learner")


@pytest.fixture
def buddy(user_factory: Callable[..., User]) -> User:
    return user_factory("Ben Buddy", UserRole.BUDDY)


@pytest.fixture
def flow_factory(db_session: Session, buddy: User) -> Callable[..., Flow]:
    """
    Save a flow built from ``steps``: one list of ``(type, data)`` pairs per step.

    Defaults to an article step followed by a task step.
    """

    def _create(
        steps: list[list[tuple[str, dict[str, Any]]]] | None = None,
        title: str = "Engineering onboarding",
        is_active: bool = True,
        default_deadline_days: int | None = None,
    ) -> Flow:
        if steps is None:
            steps = [[("article", ARTICLE_DATA)], [("task", TASK_DATA)]]
        flow = Flow.create(
            title=title,
            creator_id=buddy.id,
            default_deadline_days=default_deadline_days,
            steps=[
                FlowStep.create(
                    order=position,
                    title=f"Step {position}",
                    components=[
                        ComponentDefinition.create(order=index, type=kind, data=data)
                        for index, (kind, data) in enumerate(components, start=1)
                    ],
                )
                for position, components in enumerate(steps, start=1)
            ],
        )
        if not is_active:
            flow.deactivate()
        FlowRepository(db_session).save(flow)
        db_session.commit()
        return flow

    return _create


@pytest.fixture
def assign(
    container: Container, learner: User, buddy: User, now: datetime
) -> Callable[..., AssignFlowResult]:
    """Assign a flow to the learner, mentored by the buddy."""

    def _assign(flow: Flow, **overrides: Any) -> AssignFlowResult:
        data = AssignFlowInput(
            flow_id=str(flow.id),
            user_id=str(learner.id),
            assigned_by=str(buddy.id),
        )
        for name, value in overrides.items():
            setattr(data, name, value)
        return container.assign_flow_use_case().assign_flow(data, now=now)

    return _assign
