import logging
from unittest.mock import MagicMock

import pytest
from virtuals_acp.models import ACPJobPhase

from virtuals_acp_plugin.models import HandlerType, JobTypeConfig
from virtuals_acp_plugin.registry import JobTypeRegistry
from virtuals_acp_plugin.router import JobRouter

TEST_CLIENT_ADDRESS = "0x1234567890123456789012345678901234567890"


def make_job(name="general_query", phase=ACPJobPhase.REQUEST):
    job = MagicMock()
    job.id = 123
    job.name = name
    job.phase = phase
    job.requirement = {"query": "hello"}
    job.client_address = TEST_CLIENT_ADDRESS
    return job


class TestJobRouter:
    @pytest.fixture
    def handler(self):
        return MagicMock()

    @pytest.fixture
    def delegation(self):
        return MagicMock()

    @pytest.fixture
    def context(self):
        return MagicMock()

    @pytest.fixture
    def router(self, handler, delegation, context):
        registry = JobTypeRegistry({
            "general_query": JobTypeConfig(handler_type=HandlerType.DELEGATE),
            "swap": JobTypeConfig(handler_type=HandlerType.PREDETERMINED, handler=handler),
            "broken": JobTypeConfig(handler_type=HandlerType.PREDETERMINED),
        })
        return JobRouter(registry, delegation, context=context)

    @pytest.fixture
    def memo(self):
        memo = MagicMock()
        memo.id = 7
        memo.next_phase = ACPJobPhase.NEGOTIATION
        return memo

    class TestUnknownJobType:
        """Test jobs whose type is not configured"""

        def test_should_ignore_unknown_job_type(self, router, handler, delegation, memo):
            """Should make no protocol call for an unconfigured job type"""
            job = make_job(name="unknown")

            router.route(job, memo)

            handler.assert_not_called()
            delegation.handle.assert_not_called()
            job.accept.assert_not_called()
            job.reject.assert_not_called()
            job.deliver.assert_not_called()

        def test_should_ignore_job_without_name(self, router, handler, delegation, memo):
            """Should skip jobs that carry no job type name"""
            router.route(make_job(name=None), memo)

            handler.assert_not_called()
            delegation.handle.assert_not_called()

        def test_should_log_missing_configuration(self, router, memo, caplog):
            """Should warn about the missing configuration"""
            with caplog.at_level(logging.WARNING):
                router.route(make_job(name="unknown"), memo)

            assert "No configuration found for job type: unknown" in caplog.text

    class TestUnknownHandlerType:
        """Test job types configured with a handler type nobody routes"""

        def test_should_do_nothing_for_unknown_handler_type(self, handler, delegation, context, memo):
            """Should call no handler, no adapter and no protocol method"""
            registry = JobTypeRegistry({"legacy": {"handler_type": "custom", "handler": handler}})
            router = JobRouter(registry, delegation, context=context)
            job = make_job(name="legacy")

            router.route(job, memo)

            handler.assert_not_called()
            delegation.handle.assert_not_called()
            job.accept.assert_not_called()
            job.reject.assert_not_called()
            job.deliver.assert_not_called()

        def test_should_delegate_eliza_handler_type(self, delegation, context, memo):
            """Should route the legacy eliza handler type to the adapter"""
            router = JobRouter(
                JobTypeRegistry({"legacy": {"handler_type": "eliza"}}), delegation, context=context
            )
            job = make_job(name="legacy")

            router.route(job, memo)

            delegation.handle.assert_called_once_with(job, memo)

    class TestPredetermined:
        """Test routing to predetermined handlers"""

        def test_should_call_handler_with_context(self, router, handler, context, memo):
            """Should pass job, router context and memo to the handler"""
            job = make_job(name="swap")

            router.route(job, memo)

            handler.assert_called_once_with(job, context, memo)

        def test_should_swallow_handler_errors(self, router, handler, memo, caplog):
            """Should log and drop exceptions raised by the handler"""
            handler.side_effect = RuntimeError("boom")

            with caplog.at_level(logging.ERROR):
                router.route(make_job(name="swap"), memo)

            assert handler.call_count == 1
            assert "Error in predetermined handler for swap" in caplog.text

        def test_should_tolerate_missing_handler(self, router, delegation, memo, caplog):
            """Should warn and do nothing when no handler is configured"""
            with caplog.at_level(logging.WARNING):
                router.route(make_job(name="broken"), memo)

            delegation.handle.assert_not_called()
            assert "No handler function provided for predetermined job type: broken" in caplog.text

    class TestDelegate:
        """Test routing to the delegation adapter"""

        def test_should_delegate_job(self, router, handler, delegation, memo):
            """Should hand delegated job types to the adapter"""
            job = make_job(name="general_query")

            router.route(job, memo)

            delegation.handle.assert_called_once_with(job, memo)
            handler.assert_not_called()

        def test_should_delegate_without_memo(self, router, delegation):
            """Should pass a missing memo through as None"""
            job = make_job(name="general_query")

            router.route(job)

            delegation.handle.assert_called_once_with(job, None)

    class TestWithRegistry:
        """Test building routers with updated configuration"""

        def test_should_return_new_router(self, router, delegation, context):
            """Should leave the original router untouched"""
            updated = router.with_registry({"new_type": {"handler_type": "delegate"}})

            assert updated is not router
            assert "new_type" in updated.registry
            assert "new_type" not in router.registry
            assert updated.delegation is delegation
            assert updated.context is context

        def test_should_route_with_updated_registry(self, router, delegation, memo):
            """Should route job types added by the update"""
            job = make_job(name="new_type")

            router.with_registry({"new_type": {"handler_type": "delegate"}}).route(job, memo)

            delegation.handle.assert_called_once_with(job, memo)
