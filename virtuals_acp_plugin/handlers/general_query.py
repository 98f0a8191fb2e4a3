"""
General query handler.

A predetermined handler for free-form question jobs. It runs the same flow as
a delegated job type, with two additions:

1. REQUEST phase (next phase NEGOTIATION): the requirement is checked with
   ``can_handle_query`` before the job is accepted.
2. TRANSACTION phase (next phase EVALUATION): the runtime is sent the query
   text, with ``context`` and ``expectedFormat`` in the message metadata.
   Its reply is shaped by ``format_response``, so a client asking for
   ``json`` gets an object deliverable when the reply parses.

Register it with::

    service.update_job_type_registry({
        "general_query": JobTypeConfig(
            handler_type=HandlerType.PREDETERMINED,
            handler=handle_general_query,
        ),
    })
"""

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ValidationError
from virtuals_acp.job import ACPJob
from virtuals_acp.memo import ACPMemo

from virtuals_acp_plugin.delegation import job_message
from virtuals_acp_plugin.models import Deliverable, DeliverableMetadata

if TYPE_CHECKING:
    from virtuals_acp_plugin.service import ACPService

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 10000
UNSUPPORTED_KEYWORDS = ("illegal", "harmful", "dangerous")


class GeneralQueryRequirement(BaseModel):
    query: str
    context: Optional[Dict[str, Any]] = None
    expected_format: Optional[Literal["text", "json", "markdown"]] = None


def parse_requirement(requirement: Any) -> Optional[GeneralQueryRequirement]:
    if requirement is None:
        return None
    if isinstance(requirement, str):
        try:
            requirement = json.loads(requirement)
        except ValueError:
            return GeneralQueryRequirement(query=requirement)
        if not isinstance(requirement, dict):
            return GeneralQueryRequirement(query=str(requirement))
    if isinstance(requirement, dict):
        data = dict(requirement)
        if "expectedFormat" in data and "expected_format" not in data:
            data["expected_format"] = data.pop("expectedFormat")
        try:
            return GeneralQueryRequirement.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid general query requirement: {e}")
            return None
    return None


def can_handle_query(requirement: GeneralQueryRequirement) -> bool:
    query = requirement.query
    if len(query) > MAX_QUERY_LENGTH:
        return False
    lowered = query.lower()
    return not any(keyword in lowered for keyword in UNSUPPORTED_KEYWORDS)


def format_response(response: str, requirement: Optional[GeneralQueryRequirement]) -> Deliverable:
    expected_format = (requirement.expected_format if requirement else None) or "text"

    if expected_format == "json":
        try:
            parsed = json.loads(response)
        except ValueError:
            logger.warning("Failed to parse response as JSON, returning as text")
        else:
            if isinstance(parsed, dict):
                return Deliverable(type="object", value=parsed, metadata=DeliverableMetadata())
            logger.warning("JSON response is not an object, returning as text")

    return Deliverable(type="text", value=response, metadata=DeliverableMetadata())


def check_job(job: ACPJob) -> bool:
    requirement = parse_requirement(job.requirement)
    if requirement is None:
        return False
    return can_handle_query(requirement)


def format_job_response(response: str, job: ACPJob) -> Deliverable:
    return format_response(response, parse_requirement(job.requirement))


def build_query_message(job: ACPJob) -> Tuple[str, Dict[str, Any]]:
    """Send the query text itself; context and format travel as metadata."""
    requirement = parse_requirement(job.requirement)
    if requirement is None:
        return job_message(job)
    return requirement.query, {
        "context": requirement.context,
        "expectedFormat": requirement.expected_format,
    }


def handle_general_query(
    job: ACPJob,
    service: "ACPService",
    memo_to_sign: Optional[ACPMemo] = None,
) -> None:
    adapter = service.delegation_adapter(
        capability_check=check_job,
        formatter=format_job_response,
        message_builder=build_query_message,
    )
    adapter.handle(job, memo_to_sign)
