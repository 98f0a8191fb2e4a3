import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from virtuals_acp.job import ACPJob
from virtuals_acp.memo import ACPMemo
from virtuals_acp.models import ACPJobPhase

from virtuals_acp_plugin.channel import PendingReplies, ReplyChannel
from virtuals_acp_plugin.env import DEFAULT_DELEGATION_TIMEOUT_SECONDS
from virtuals_acp_plugin.helpers import create_unique_uuid, string_to_uuid
from virtuals_acp_plugin.models import Deliverable
from virtuals_acp_plugin.runtime import (
    AgentRuntime,
    ChannelType,
    Content,
    EventType,
    HandlerCallback,
    Memory,
)

logger = logging.getLogger(__name__)

ACP_SOURCE = "acp"

ACCEPT_REASON = "Job requirement matches agent capability"
CAPABILITY_REJECT_REASON = "Job requirement does not meet agent capability"
PROCESSING_REJECT_REASON = "Unable to process job requirement"

CapabilityCheck = Callable[[ACPJob], bool]
ResponseFormatter = Callable[[str, ACPJob], Deliverable]
# job -> (message text, extra message metadata)
MessageBuilder = Callable[[ACPJob], Tuple[str, Dict[str, Any]]]

PhaseTransition = Tuple[ACPJobPhase, Optional[ACPJobPhase]]


def accept_all(job: ACPJob) -> bool:
    return True


def text_deliverable(text: str, job: ACPJob) -> Deliverable:
    return Deliverable(type="text", value=text)


def job_message(job: ACPJob) -> Tuple[str, Dict[str, Any]]:
    text = json.dumps(
        {
            "jobId": str(job.id),
            "jobName": str(job.name),
            "requirement": job.requirement,
            "clientAddress": job.client_address,
        },
        default=str,
    )
    return text, {}


def as_phase(value: Any) -> Optional[ACPJobPhase]:
    if value is None:
        return None
    try:
        return ACPJobPhase(value)
    except (ValueError, TypeError):
        return None


def phase_name(value: Any) -> str:
    phase = as_phase(value)
    return phase.name if phase is not None else str(value)


class AIDelegationAdapter:
    """
    Hands ACP jobs to the agent runtime.

    Two phase transitions are handled, keyed by the job's current phase and
    the next phase proposed by the memo to sign:

    - REQUEST -> NEGOTIATION: run the capability check, then accept the job
      and post the payment requirement, or reject it.
    - TRANSACTION -> EVALUATION: send the requirement to the runtime as one
      message, wait for its single reply and deliver it. No reply text, a
      timeout or any failure rejects the job. A reply that started before the
      timeout is stored and delivered; one that arrives after it is dropped
      without touching the runtime.

    Every other combination is logged and left alone. Nothing is kept between
    calls.
    """

    TRANSITIONS: Dict[PhaseTransition, str] = {
        (ACPJobPhase.REQUEST, ACPJobPhase.NEGOTIATION): "declare_request",
        (ACPJobPhase.TRANSACTION, ACPJobPhase.EVALUATION): "settle",
    }

    def __init__(
        self,
        runtime: AgentRuntime,
        timeout: float = DEFAULT_DELEGATION_TIMEOUT_SECONDS,
        capability_check: Optional[CapabilityCheck] = None,
        formatter: Optional[ResponseFormatter] = None,
        pending: Optional[PendingReplies] = None,
        message_builder: Optional[MessageBuilder] = None,
    ):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.runtime = runtime
        self.timeout = timeout
        self.capability_check = capability_check or accept_all
        self.formatter = formatter or text_deliverable
        self.pending = pending if pending is not None else PendingReplies()
        self.message_builder = message_builder or job_message

    def handle(self, job: ACPJob, memo_to_sign: Optional[ACPMemo] = None) -> None:
        next_phase = memo_to_sign.next_phase if memo_to_sign is not None else None
        transition = (as_phase(job.phase), as_phase(next_phase))
        step = self.TRANSITIONS.get(transition)

        if step is None:
            logger.warning(
                f"[ACP delegate] Unhandled phase combination for job {job.id}: "
                f"phase={phase_name(job.phase)}, next_phase={phase_name(next_phase)}"
            )
            return

        try:
            getattr(self, step)(job, memo_to_sign)
        except Exception:
            logger.exception(f"[ACP delegate] Error while handling job {job.id}")

    def declare_request(self, job: ACPJob, memo_to_sign: Optional[ACPMemo] = None) -> None:
        logger.info(f"[ACP delegate] REQUEST phase for job {job.id}, checking capability")

        if self.capability_check(job):
            job.accept(ACCEPT_REASON)
            job.create_requirement(f"Job {job.id} accepted, please make payment to proceed")
            logger.info(f"[ACP delegate] Job {job.id} accepted and requirement created")
        else:
            job.reject(CAPABILITY_REJECT_REASON)
            logger.warning(f"[ACP delegate] Job {job.id} rejected by capability check")

    def settle(self, job: ACPJob, memo_to_sign: Optional[ACPMemo] = None) -> None:
        logger.info(f"[ACP delegate] TRANSACTION phase for job {job.id}, processing with runtime")

        try:
            deliverable = self.request_deliverable(job, memo_to_sign)
        except Exception:
            logger.exception(f"[ACP delegate] Runtime failed to process job {job.id}")
            deliverable = None

        if deliverable is not None:
            job.deliver(deliverable.to_payload())
            logger.info(f"[ACP delegate] Job {job.id} delivered")
        else:
            job.reject(PROCESSING_REJECT_REASON)
            logger.error(f"[ACP delegate] Job {job.id} rejected, no deliverable")

    def request_deliverable(
        self, job: ACPJob, memo_to_sign: Optional[ACPMemo] = None
    ) -> Optional[Deliverable]:
        """Send the job to the runtime and block until it replies or times out."""
        job_id = str(job.id)
        client = job.client_address or job_id

        entity_id = create_unique_uuid(self.runtime, client)
        message_id = string_to_uuid(
            str(memo_to_sign.id if memo_to_sign is not None and memo_to_sign.id else job.id)
        )
        room_id = string_to_uuid(job_id)

        self.runtime.ensure_connection(
            entity_id=entity_id,
            user_name=client,
            user_id=string_to_uuid(client),
            room_id=room_id,
            channel_id=job_id,
            server_id=job_id,
            source=ACP_SOURCE,
            type=ChannelType.DM,
            world_id=room_id,
        )

        text, extra_metadata = self.message_builder(job)
        message = Memory(
            id=message_id,
            entity_id=entity_id,
            agent_id=self.runtime.agent_id,
            room_id=room_id,
            content=Content(text=text, source=ACP_SOURCE),
            metadata={
                **extra_metadata,
                "type": ACP_SOURCE,
                "jobId": job_id,
                "jobName": str(job.name),
                "requirement": job.requirement,
                "clientAddress": job.client_address,
            },
        )

        channel = self.pending.open(f"job {job_id}")
        try:
            self.runtime.emit_event(
                EventType.MESSAGE_RECEIVED,
                {
                    "runtime": self.runtime,
                    "message": message,
                    "callback": self._reply_callback(job, channel, room_id, message_id),
                    "source": ACP_SOURCE,
                },
            )
            return channel.wait(self.timeout)
        finally:
            self.pending.close(channel)

    def _reply_callback(
        self,
        job: ACPJob,
        channel: ReplyChannel,
        room_id: str,
        message_id: str,
    ) -> HandlerCallback:
        job_id = str(job.id)

        def callback(content: Union[Content, Dict[str, Any]], files: Optional[List[str]] = None) -> List[Memory]:
            if not channel.claim():
                logger.warning(f"[ACP delegate] Late reply for job {job_id} ignored")
                return []

            deliverable: Optional[Deliverable] = None
            try:
                if isinstance(content, dict):
                    content = Content.model_validate(content)
                if not content.text:
                    logger.warning(f"[ACP delegate] No text content in reply for job {job_id}")
                    return []

                formatted = self.formatter(content.text, job)

                response = Memory(
                    id=create_unique_uuid(self.runtime, f"{job_id}-response"),
                    entity_id=self.runtime.agent_id,
                    agent_id=self.runtime.agent_id,
                    room_id=room_id,
                    content=content.model_copy(
                        update={"in_reply_to": message_id, "channel_type": ChannelType.DM}
                    ),
                    metadata={"type": ACP_SOURCE, "jobId": job_id, "delivered": True},
                )
                self.runtime.create_memory(response, "messages")

                deliverable = formatted
                return [response]
            except Exception:
                logger.exception(f"[ACP delegate] Error in reply callback for job {job_id}")
                return []
            finally:
                channel.resolve(deliverable)

        return callback
