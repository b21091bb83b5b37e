"""
grade_services.workflow -- Composition root for the approval workflow.

Responsibility:
    Builds the action registry from configuration, the ActionRunner, and
    hands out kernel services and selectors bound to a caller's session.
    It is also the ActionContext every handler receives.

Architecture position:
    Services -- top of the stack.  Imports grade_kernel and grade_config;
    neither of them imports this module.

Invariants enforced:
    - The registry is built once, at construction, and only read after that.
    - Every service handed out shares this workflow's clock, runner and user
      directory.

Failure modes:
    - A configured handler class that cannot be imported is logged
      (``approval_action_unavailable``) and left unregistered.  Requests
      carrying its key resolve normally and the runner logs the unknown key.
    - A configured class that is not an ApprovalRequestAction is registered
      anyway (instantiated without arguments).  The runner reports it as
      misconfigured when a request carrying its key resolves.

Usage:
    workflow = ApprovalWorkflow.from_config(get_active_config())
    with workflow.session_scope() as session:
        request = workflow.approval_service(session).create(...)
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import AbstractContextManager

from sqlalchemy.orm import Session, sessionmaker

from grade_config.bridges import build_action_settings, load_action_class
from grade_config.schema import GradeConfig
from grade_kernel.actions.base import ActionSettings, ApprovalRequestAction
from grade_kernel.actions.registry import ActionRegistry
from grade_kernel.db.engine import get_session_factory, init_engine_from_url, session_scope
from grade_kernel.domain.approval import UserDirectory
from grade_kernel.domain.clock import Clock, SystemClock
from grade_kernel.domain.storage import BlobStorage
from grade_kernel.logging_config import get_logger
from grade_kernel.selectors.approval_selector import ApprovalSelector
from grade_kernel.services.academic_period_service import AcademicPeriodService
from grade_kernel.services.action_runner import ActionRunner
from grade_kernel.services.approval_file_service import ApprovalFileService
from grade_kernel.services.approval_service import ApprovalRequestService
from grade_services.storage import LocalBlobStorage
from grade_services.user_directory import DatabaseUserDirectory

logger = get_logger("workflow")


class ApprovalWorkflow:
    """Central factory for approval services.

    Contract:
        Receives a session factory and a GradeConfig.  Builds the registry
        and runner once and exposes factories for services bound to a
        session.

    Non-goals:
        - Does NOT manage transaction boundaries for services it hands out;
          ``session_scope()`` is a convenience for callers that want one.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: GradeConfig,
        clock: Clock | None = None,
        user_directory: UserDirectory | None = None,
        storage: BlobStorage | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.config = config
        self.clock = clock or SystemClock()
        self.settings: ActionSettings = build_action_settings(config)
        self.user_directory = user_directory
        self.storage = storage or LocalBlobStorage(
            config.storage.root,
            disk=config.storage.disk,
            base_url=config.storage.base_url,
        )
        self.registry = self._build_registry(config.approval.actions)
        self.runner = ActionRunner(self.registry)

    @classmethod
    def from_config(
        cls, config: GradeConfig, clock: Clock | None = None,
    ) -> ApprovalWorkflow:
        """Initialise the global engine from config and wire a workflow on it."""
        db = config.database
        init_engine_from_url(
            db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
        )
        factory = get_session_factory()
        return cls(factory, config, clock=clock, user_directory=DatabaseUserDirectory(factory))

    # ------------------------------------------------------------------
    # ActionContext
    # ------------------------------------------------------------------

    def session_scope(self) -> AbstractContextManager[Session]:
        return session_scope(self.session_factory)

    def approval_service(self, session: Session) -> ApprovalRequestService:
        return ApprovalRequestService(
            session,
            self.runner,
            clock=self.clock,
            user_directory=self.user_directory,
        )

    # ------------------------------------------------------------------
    # Other factories
    # ------------------------------------------------------------------

    def selector(self, session: Session) -> ApprovalSelector:
        return ApprovalSelector(session, user_directory=self.user_directory)

    def file_service(self, session: Session) -> ApprovalFileService:
        return ApprovalFileService(
            session,
            self.storage,
            clock=self.clock,
            directory_pattern=self.config.storage.directory_pattern,
        )

    def academic_period_service(self, session: Session) -> AcademicPeriodService:
        return AcademicPeriodService(
            session,
            self.clock,
            active_state_name=self.settings.active_state_name,
            auto_phase_name=self.settings.auto_phase_name,
        )

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _build_registry(self, actions: Mapping[str, str]) -> ActionRegistry:
        registry = ActionRegistry()
        for action_key, reference in actions.items():
            try:
                handler_class = load_action_class(reference)
            except (ImportError, AttributeError, TypeError) as exc:
                logger.warning(
                    "approval_action_unavailable",
                    extra={
                        "action_key": action_key,
                        "reference": reference,
                        "error": str(exc),
                    },
                )
                continue

            if issubclass(handler_class, ApprovalRequestAction):
                registry.register(action_key, handler_class(self))
            else:
                registry.register(action_key, handler_class())

        logger.info(
            "approval_registry_built",
            extra={"action_keys": registry.list_action_keys()},
        )
        return registry
