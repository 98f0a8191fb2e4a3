import logging
from typing import Any, Optional

from virtuals_acp.job import ACPJob
from virtuals_acp.memo import ACPMemo

from virtuals_acp_plugin.delegation import AIDelegationAdapter
from virtuals_acp_plugin.models import HandlerType
from virtuals_acp_plugin.registry import JobTypeRegistry, RegistryUpdate

logger = logging.getLogger(__name__)


class JobRouter:
    """
    Routes incoming ACP jobs by job type name.

    Predetermined job types run their configured handler with
    ``(job, context, memo_to_sign)``; handler errors are logged and dropped.
    Delegated job types go to the ``AIDelegationAdapter``. Unknown job types
    are logged and ignored; any other handler type is skipped silently.

    The registry is fixed for the lifetime of a router. Use ``with_registry``
    to get a router with updated configuration.
    """

    def __init__(
        self,
        registry: JobTypeRegistry,
        delegation: AIDelegationAdapter,
        context: Any = None,
    ):
        self.registry = registry
        self.delegation = delegation
        self.context = context

    def with_registry(self, update: RegistryUpdate) -> "JobRouter":
        return JobRouter(self.registry.merge(update), self.delegation, self.context)

    def route(self, job: ACPJob, memo_to_sign: Optional[ACPMemo] = None) -> None:
        job_name = job.name
        config = self.registry.get(job_name) if job_name else None

        if config is None:
            logger.warning(f"[route] No configuration found for job type: {job_name}")
            return

        if config.handler_type == HandlerType.PREDETERMINED:
            if config.handler is None:
                logger.warning(
                    f"[route] No handler function provided for predetermined job type: {job_name}"
                )
                return
            try:
                config.handler(job, self.context, memo_to_sign)
            except Exception:
                logger.exception(f"[route] Error in predetermined handler for {job_name}")
        elif config.handler_type == HandlerType.DELEGATE:
            self.delegation.handle(job, memo_to_sign)
