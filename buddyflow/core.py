from dependency_injector import containers, providers
from sqlalchemy.orm import Session

from buddyflow.application.assignments.use_cases.assign_flow_use_case import AssignFlowUseCase
from buddyflow.application.assignments.use_cases.assignment_lifecycle_use_case import (
    AssignmentLifecycleUseCase,
)
from buddyflow.application.common.best_effort import BestEffortRunner
from buddyflow.application.progress.services.progress_service import ProgressService
from buddyflow.application.progress.use_cases.interact_with_component_use_case import (
    InteractWithComponentUseCase,
)
from buddyflow.application.snapshots.services.snapshot_service import SnapshotService
from buddyflow.config import get_settings
from buddyflow.domain.progress.handlers.registry import build_default_registry
from buddyflow.domain.snapshots.services.snapshot_builder import SnapshotBuilder
from buddyflow.infrastructure.assignments.repositories import FlowAssignmentRepository
from buddyflow.infrastructure.common.event_log import log_domain_event
from buddyflow.infrastructure.common.unit_of_work import SQLAlchemyUnitOfWork
from buddyflow.infrastructure.flows.repositories import FlowRepository
from buddyflow.infrastructure.identity.repositories import UserRepository
from buddyflow.infrastructure.progress.repositories import FlowProgressRepository
from buddyflow.infrastructure.progress.services import (
    LoggingNotificationService,
    OutcomeAchievementService,
)
from buddyflow.infrastructure.snapshots.repositories import FlowSnapshotRepository


class Container(containers.DeclarativeContainer):
    """Dependency injection container."""

    # Declare db as a dependency that will be provided at runtime
    db = providers.Dependency(instance_of=Session)

    settings = providers.Callable(get_settings)

    # Repositories
    user_repository = providers.Factory(UserRepository, db=db)
    flow_repository = providers.Factory(FlowRepository, db=db)
    snapshot_repository = providers.Factory(FlowSnapshotRepository, db=db)
    assignment_repository = providers.Factory(FlowAssignmentRepository, db=db)
    progress_repository = providers.Factory(FlowProgressRepository, db=db)

    unit_of_work = providers.Factory(
        SQLAlchemyUnitOfWork,
        db=db,
        event_handlers=providers.List(providers.Object(log_domain_event)),
    )

    # Domain services (pure domain logic, no db)
    registry = providers.Singleton(build_default_registry)
    snapshot_builder = providers.Factory(
        SnapshotBuilder,
        registry=registry,
        snapshot_version=settings.provided.SNAPSHOT_VERSION,
    )

    # Side channels
    side_channel_runner = providers.Singleton(
        BestEffortRunner,
        timeout_seconds=settings.provided.SIDE_CHANNEL_TIMEOUT_SECONDS,
    )
    notification_service = providers.Singleton(LoggingNotificationService)
    achievement_service = providers.Singleton(OutcomeAchievementService)

    # Application services
    snapshot_service = providers.Factory(
        SnapshotService,
        snapshot_repository=snapshot_repository,
        snapshot_builder=snapshot_builder,
    )
    progress_service = providers.Factory(
        ProgressService,
        progress_repository=progress_repository,
        snapshot_repository=snapshot_repository,
        registry=registry,
    )

    # Assignment use cases
    assign_flow_use_case = providers.Factory(
        AssignFlowUseCase,
        flow_repository=flow_repository,
        user_repository=user_repository,
        assignment_repository=assignment_repository,
        snapshot_service=snapshot_service,
        progress_service=progress_service,
        unit_of_work=unit_of_work,
        notification_service=notification_service,
        side_channel_runner=side_channel_runner,
    )
    assignment_lifecycle_use_case = providers.Factory(
        AssignmentLifecycleUseCase,
        assignment_repository=assignment_repository,
        user_repository=user_repository,
        progress_service=progress_service,
        snapshot_service=snapshot_service,
        unit_of_work=unit_of_work,
        notification_service=notification_service,
        side_channel_runner=side_channel_runner,
    )

    # Progress use cases
    interact_with_component_use_case = providers.Factory(
        InteractWithComponentUseCase,
        assignment_repository=assignment_repository,
        snapshot_service=snapshot_service,
        progress_service=progress_service,
        registry=registry,
        unit_of_work=unit_of_work,
        achievement_service=achievement_service,
        notification_service=notification_service,
        side_channel_runner=side_channel_runner,
    )


# Initialize container
container = Container()
