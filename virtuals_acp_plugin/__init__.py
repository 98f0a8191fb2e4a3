# virtuals_acp_plugin/__init__.py

from .models import (
    HandlerType,
    JobTypeConfig,
    Deliverable,
    DeliverableMetadata
)
from .exceptions import (
    ACPPluginError,
    ACPPluginConfigError,
    ACPServiceStartError,
    ACPClientNotReadyError,
    ACPDelegationError,
    ACPDelegationTimeoutError,
    ACPDelegationCancelledError
)
from .runtime import AgentRuntime, Plugin
from .registry import JobTypeRegistry, create_default_job_type_registry
from .router import JobRouter
from .delegation import AIDelegationAdapter
from .bootstrap import connect_with_retry
from .helpers import (
    create_acp_contract_client,
    get_account_from_private_key,
    get_acp_config
)
from .service import ACPService, SERVICE_NAME
from .handlers import handle_general_query

virtuals_acp_plugin = Plugin(
    name="plugin-virtuals-acp",
    description="Virtuals ACP (Agent Communication Protocol) service plugin for agent runtimes.",
    services=[ACPService],
    routes=[],
)

__all__ = [
    "virtuals_acp_plugin",
    "ACPService",
    "SERVICE_NAME",
    "AgentRuntime",
    "Plugin",
    "HandlerType",
    "JobTypeConfig",
    "Deliverable",
    "DeliverableMetadata",
    "JobTypeRegistry",
    "create_default_job_type_registry",
    "JobRouter",
    "AIDelegationAdapter",
    "connect_with_retry",
    "create_acp_contract_client",
    "get_account_from_private_key",
    "get_acp_config",
    "handle_general_query",
    "ACPPluginError",
    "ACPPluginConfigError",
    "ACPServiceStartError",
    "ACPClientNotReadyError",
    "ACPDelegationError",
    "ACPDelegationTimeoutError",
    "ACPDelegationCancelledError"
]

__version__ = "0.1.0"
