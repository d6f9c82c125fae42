"""Tests for the app factory and HTTP surface."""

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from mari.api.factory import create_app
from mari.domain.compliance import COMPLIANCE_MESSAGE
from mari.domain.messages import CartStatus, ReplyAction, ReplyEnvelope
from mari.domain.pipeline import MessagePipeline
from mari.domain.responses import INTERNAL_ERROR_MESSAGE
from mari.infra.settings import Settings
from mari.observability.correlation import CORRELATION_ID_HEADER

from .helpers import LogRecorder, fake_llm, make_pipeline, model_json


def _stub_pipeline(envelope=None, error=None):
    pipeline = MagicMock(spec=MessagePipeline)
    pipeline.process = AsyncMock(return_value=envelope, side_effect=error)
    return pipeline


def _client(settings=None, pipeline=None):
    return TestClient(create_app(settings or Settings(), pipeline=pipeline or make_pipeline()))


class TestProcessMessage:
    def test_reply_envelope(self):
        llm = fake_llm(complete=model_json(intent="handoff", response_text="x"))
        client = _client(pipeline=make_pipeline(llm))
        response = client.post(
            "/api/process-message", json={"conversation_id": "c1", "content": "atendente"}
        )
        assert response.status_code == 200
        assert response.json() == {
            "action": "handoff",
            "response_text": "Entendido. Vou transferir você para um de nossos atendentes.",
            "handoff_required": True,
            "cart_status": {"total": "0.00", "items": 0},
        }

    def test_degraded_mode(self):
        client = _client()
        response = client.post(
            "/api/process-message", json={"conversation_id": "c1", "content": "hi"}
        )
        assert response.status_code == 200
        assert response.json()["response_text"] == "Simulação: hi"

    def test_numeric_conversation_id_accepted(self):
        envelope = ReplyEnvelope(
            action=ReplyAction.REPLY, response_text="ok", handoff_required=False
        )
        pipeline = _stub_pipeline(envelope)
        client = _client(pipeline=pipeline)
        response = client.post("/api/process-message", json={"conversation_id": 42})
        assert response.status_code == 200
        inbound = pipeline.process.call_args.args[0]
        assert inbound.conversation_id == "42"
        assert inbound.content is None
        assert inbound.attachments == ()

    def test_attachments_passed_to_pipeline(self):
        envelope = ReplyEnvelope(
            action=ReplyAction.REPLY,
            response_text="ok",
            handoff_required=False,
            cart_status=CartStatus(),
        )
        pipeline = _stub_pipeline(envelope)
        client = _client(pipeline=pipeline)
        client.post(
            "/api/process-message",
            json={
                "conversation_id": "c1",
                "attachments": [{"type": "image", "url": "https://cdn.example/a.jpg"}],
            },
        )
        inbound = pipeline.process.call_args.args[0]
        assert inbound.attachments[0].type == "image"

    def test_missing_conversation_id_rejected(self):
        pipeline = _stub_pipeline()
        client = _client(pipeline=pipeline)
        response = client.post("/api/process-message", json={"content": "oi"})
        assert response.status_code == 422
        pipeline.process.assert_not_called()

    def test_pipeline_failure_returns_generic_apology(self):
        pipeline = _stub_pipeline(error=RuntimeError("boom"))
        client = _client(pipeline=pipeline)
        response = client.post(
            "/api/process-message", json={"conversation_id": "c1", "content": "oi"}
        )
        assert response.status_code == 500
        body = response.json()
        assert body["response_text"] == INTERNAL_ERROR_MESSAGE
        assert body["action"] == "reply"
        assert "boom" not in response.text


class TestComplianceGate:
    def test_cpf_blocked_before_processing(self):
        pipeline = _stub_pipeline()
        client = _client(pipeline=pipeline)
        response = client.post(
            "/api/process-message",
            json={"conversation_id": "c1", "content": "meu cpf é 123.456.789-09"},
        )
        assert response.status_code == 400
        assert response.json() == {"status": "compliance_error", "message": COMPLIANCE_MESSAGE}
        pipeline.process.assert_not_called()

    def test_card_blocked(self):
        client = _client(pipeline=_stub_pipeline())
        response = client.post(
            "/api/process-message",
            json={"conversation_id": "c1", "content": "4111 1111 1111 1111"},
        )
        assert response.status_code == 400

    def test_gate_runs_before_payload_validation(self):
        client = _client(pipeline=_stub_pipeline())
        response = client.post("/api/process-message", json={"content": "12345678909"})
        assert response.status_code == 400

    def test_escaped_digits_still_detected(self):
        client = _client(pipeline=_stub_pipeline())
        response = client.post(
            "/api/process-message",
            content=b'{"conversation_id": "c1", "content": "\\u0031\\u0032\\u0033.456.789-09"}',
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400

    def test_blocked_request_logs_masked_snippet(self):
        recorder = LogRecorder()
        client = _client(pipeline=_stub_pipeline())
        with patch("mari.api.compliance.logger", recorder):
            client.post(
                "/api/process-message",
                json={"conversation_id": "c1", "content": "cpf 123.456.789-09"},
            )
        assert "sensitive data detected, request blocked" in recorder.messages("warning")
        assert "123.456.789-09" not in recorder.get_all_logged_content()

    def test_health_not_gated(self):
        client = _client()
        response = client.get("/health", params={"q": "12345678909"})
        assert response.status_code == 503


class TestCorrelationId:
    def test_generated_when_absent(self):
        response = _client().get("/health")
        assert response.headers[CORRELATION_ID_HEADER]

    def test_preserved_when_present(self):
        response = _client().get("/health", headers={CORRELATION_ID_HEADER: "abc-123"})
        assert response.headers[CORRELATION_ID_HEADER] == "abc-123"


class TestHealth:
    def test_degraded_when_unconfigured(self):
        response = _client().get("/health")
        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "DEGRADED"
        assert body["service"] == "mari-agent-microservice"
        assert body["integrations"]["openai"] == {"status": "UNCONFIGURED"}

    def test_up_when_configured(self, configured_settings):
        response = _client(settings=configured_settings).get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "UP"
        assert body["version"] == "1.0.0"
        assert body["environment"] == "development"
        assert body["uptime"].startswith("0 days, 00:00:")
        assert float(body["memory_usage_mb"]) > 0
        assert body["integrations"] == {
            "openai": {"status": "UP"},
            "woocommerce": {"status": "CONFIGURED"},
            "payment_gateway": {"status": "CONFIGURED"},
        }

    def test_logs_not_implemented(self):
        response = _client().get("/logs")
        assert response.status_code == 501
        assert "message" in response.json()


class TestRateLimit:
    def test_requests_over_limit_rejected(self):
        client = _client(settings=Settings(rate_limit_max_requests=2))
        assert client.get("/logs").status_code == 501
        assert client.get("/logs").status_code == 501

        response = client.get("/logs")
        assert response.status_code == 429
        assert response.json()["status"] == "error"
        assert int(response.headers["Retry-After"]) >= 1
        assert response.headers[CORRELATION_ID_HEADER]
