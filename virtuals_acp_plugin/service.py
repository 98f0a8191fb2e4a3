import logging
from typing import Any, List, Optional, Tuple, Union

from virtuals_acp.client import VirtualsACP
from virtuals_acp.job import ACPJob
from virtuals_acp.memo import ACPMemo

from virtuals_acp_plugin.bootstrap import connect_with_retry
from virtuals_acp_plugin.channel import PendingReplies
from virtuals_acp_plugin.delegation import (
    AIDelegationAdapter,
    CapabilityCheck,
    MessageBuilder,
    ResponseFormatter,
    phase_name,
)
from virtuals_acp_plugin.env import EnvSettings
from virtuals_acp_plugin.exceptions import (
    ACPClientNotReadyError,
    ACPPluginConfigError,
    ACPServiceStartError,
)
from virtuals_acp_plugin.helpers import create_acp_contract_client
from virtuals_acp_plugin.registry import JobTypeRegistry, RegistryUpdate
from virtuals_acp_plugin.router import JobRouter
from virtuals_acp_plugin.runtime import AgentRuntime

logger = logging.getLogger(__name__)

SERVICE_NAME = "virtuals-acp"

REQUIRED_SETTINGS = (
    "ACP_WALLET_PRIVATE_KEY",
    "ACP_ENTITY_ID",
    "ACP_AGENT_WALLET_ADDRESS",
)

JobId = Union[str, int]


class ACPService:
    """
    ACP service for an agent runtime.

    The service owns the ``VirtualsACP`` client, receives its ``on_new_task``
    callbacks and routes each job through a ``JobRouter``. It also exposes
    read-through queries on the client for code embedding the plugin.

    Attributes:
        runtime (AgentRuntime): Host runtime the service is registered with
        settings (EnvSettings): Resolved plugin settings
        router (JobRouter): Current router; replaced on registry updates
        client (Optional[VirtualsACP]): Connected ACP client, None until started
    """

    service_type = SERVICE_NAME
    capability_description = (
        "The agent is able to send and receive jobs using Virtuals ACP (Agent Communication Protocol)."
    )

    def __init__(
        self,
        runtime: AgentRuntime,
        job_type_registry: Optional[RegistryUpdate] = None,
        settings: Optional[EnvSettings] = None,
    ):
        self.runtime = runtime
        self.settings = settings if settings is not None else self.load_settings(runtime)
        self.pending = PendingReplies()
        self.router = JobRouter(
            JobTypeRegistry.seed().merge(job_type_registry),
            self.delegation_adapter(),
            context=self,
        )
        self.client: Optional[VirtualsACP] = None

    @staticmethod
    def load_settings(runtime: AgentRuntime) -> EnvSettings:
        """Environment settings, overridden by any value the runtime provides."""
        overrides = {}
        for key in EnvSettings.model_fields:
            value = runtime.get_setting(key)
            if value is not None and value != "":
                overrides[key] = value
        return EnvSettings(**overrides)

    @classmethod
    def start(
        cls,
        runtime: AgentRuntime,
        job_type_registry: Optional[RegistryUpdate] = None,
    ) -> "ACPService":
        logger.info("Constructing new ACPService...")

        try:
            service = cls(runtime, job_type_registry)
            service.setup_client_with_retry()
            logger.info("ACP service started successfully")
        except Exception as e:
            logger.error(f"Failed to start ACP service: {e}")
            raise ACPServiceStartError(f"Failed to register service {SERVICE_NAME}: {e}") from e

        return service

    def stop(self) -> None:
        self.pending.cancel_all()
        self.client = None
        logger.info("ACP service stopped")

    @property
    def job_type_registry(self) -> JobTypeRegistry:
        return self.router.registry

    def update_job_type_registry(self, update: RegistryUpdate) -> None:
        self.router = self.router.with_registry(update)
        logger.info("Job type registry updated")

    def delegation_adapter(
        self,
        capability_check: Optional[CapabilityCheck] = None,
        formatter: Optional[ResponseFormatter] = None,
        message_builder: Optional[MessageBuilder] = None,
    ) -> AIDelegationAdapter:
        return AIDelegationAdapter(
            self.runtime,
            timeout=self.settings.ACP_DELEGATION_TIMEOUT_SECONDS,
            capability_check=capability_check,
            formatter=formatter,
            pending=self.pending,
            message_builder=message_builder,
        )

    def _required_settings(self) -> Tuple[str, int, str]:
        for key in REQUIRED_SETTINGS:
            if getattr(self.settings, key) in (None, ""):
                raise ACPPluginConfigError(f"{key} is required")
        return (
            self.settings.ACP_WALLET_PRIVATE_KEY,
            self.settings.ACP_ENTITY_ID,
            self.settings.ACP_AGENT_WALLET_ADDRESS,
        )

    def setup_client(self) -> VirtualsACP:
        private_key, entity_id, agent_address = self._required_settings()

        client = VirtualsACP(
            acp_contract_clients=create_acp_contract_client(
                wallet_private_key=private_key,
                entity_id=entity_id,
                agent_wallet_address=agent_address,
            ),
            on_new_task=self.handle_new_task,
        )
        logger.info("ACP client created successfully")
        return client

    def setup_client_with_retry(self, max_retries: Optional[int] = None) -> None:
        # missing settings are fatal, retrying cannot fix them
        self._required_settings()
        self.client = connect_with_retry(
            self.setup_client,
            max_retries=max_retries or self.settings.ACP_MAX_CONNECT_RETRIES,
        )

    def handle_new_task(self, job: ACPJob, memo_to_sign: Optional[ACPMemo] = None) -> None:
        """Inbound ``on_new_task`` callback from the ACP client."""
        logger.info(
            f"[handle_new_task] job_id={job.id}, phase={phase_name(job.phase)}, "
            f"job_name={job.name}, memo_id={getattr(memo_to_sign, 'id', None)}, "
            f"next_phase={phase_name(getattr(memo_to_sign, 'next_phase', None))}, "
            f"memo_type={getattr(memo_to_sign, 'type', None)}"
        )
        self.router.route(job, memo_to_sign)

    @property
    def acp_client(self) -> VirtualsACP:
        if self.client is None:
            raise ACPClientNotReadyError("ACP client is not connected, start the service first")
        return self.client

    def get_active_jobs(self, page: int = 1, page_size: int = 10) -> List[ACPJob]:
        try:
            return self.acp_client.get_active_jobs(page=page, page_size=page_size)
        except Exception as e:
            logger.error(f"Error getting active jobs: {e}")
            raise

    def get_completed_jobs(self, page: int = 1, page_size: int = 10) -> List[ACPJob]:
        try:
            return self.acp_client.get_completed_jobs(page=page, page_size=page_size)
        except Exception as e:
            logger.error(f"Error getting completed jobs: {e}")
            raise

    def get_cancelled_jobs(self, page: int = 1, page_size: int = 10) -> List[ACPJob]:
        try:
            return self.acp_client.get_cancelled_jobs(page=page, page_size=page_size)
        except Exception as e:
            logger.error(f"Error getting cancelled jobs: {e}")
            raise

    def get_pending_memo_jobs(self, page: int = 1, page_size: int = 10) -> List[ACPJob]:
        try:
            return self.acp_client.get_pending_memo_jobs(page=page, page_size=page_size)
        except Exception as e:
            logger.error(f"Error getting pending memo jobs: {e}")
            raise

    def get_job_by_id(self, job_id: JobId) -> Optional[ACPJob]:
        try:
            return self.acp_client.get_job_by_onchain_id(int(job_id))
        except Exception as e:
            logger.error(f"Error getting job by ID: {e}")
            raise

    def get_memo_by_id(self, job_id: JobId, memo_id: JobId) -> Optional[ACPMemo]:
        try:
            return self.acp_client.get_memo_by_id(int(job_id), int(memo_id))
        except Exception as e:
            logger.error(f"Error getting memo by ID: {e}")
            raise

    def get_account_by_job_id(self, job_id: JobId) -> Any:
        try:
            return self.acp_client.get_account_by_job_id(int(job_id))
        except Exception as e:
            logger.error(f"Error getting account by job ID: {e}")
            raise

    def get_by_client_and_provider(self, client_address: str, provider_address: str) -> Any:
        try:
            return self.acp_client.get_by_client_and_provider(client_address, provider_address)
        except Exception as e:
            logger.error(f"Error getting account by addresses: {e}")
            raise

    def create_notification(self, job_id: JobId, content: str) -> Optional[str]:
        """Post a notification memo on a job. Returns the memo result as a string."""
        try:
            job = self.get_job_by_id(job_id)
            if not job:
                logger.error(f"Job not found: {job_id}")
                return None

            create_notification = getattr(job, "create_notification", None)
            if not callable(create_notification):
                logger.warning("[ACPService] create_notification is not available on ACPJob")
                return None

            memo_id = create_notification(content)
            return str(memo_id) if memo_id else None
        except Exception as e:
            logger.error(f"Error creating notification: {e}")
            raise
