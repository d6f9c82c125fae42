"""End-to-end tests for the message pipeline (collaborators in memory)."""

import json
from unittest.mock import patch

import pytest

from mari.domain.messages import Attachment, InboundMessage, ReplyAction

from .helpers import LogRecorder, fake_llm, make_pipeline, model_json


class TestProcess:
    @pytest.mark.asyncio
    async def test_add_to_cart_flow(self):
        llm = fake_llm(
            complete=model_json(
                intent="add_to_cart", response_text="Vou adicionar!", product_id="7", quantity=2
            )
        )
        envelope = await make_pipeline(llm).process(
            InboundMessage(conversation_id="c1", content="quero 2 camisetas")
        )
        assert envelope.action is ReplyAction.REPLY
        assert envelope.handoff_required is False
        assert envelope.response_text == (
            "Produto adicionado ao seu carrinho. O total atual é R$ 100.00."
        )
        assert envelope.cart_status.total == "100.00"
        assert envelope.cart_status.items == 2

    @pytest.mark.asyncio
    async def test_handoff_flow(self):
        llm = fake_llm(complete=model_json(intent="handoff", response_text="x"))
        envelope = await make_pipeline(llm).process(
            InboundMessage(conversation_id="c1", content="quero falar com alguém")
        )
        assert envelope.action is ReplyAction.HANDOFF
        assert envelope.handoff_required is True

    @pytest.mark.asyncio
    async def test_degraded_mode_echoes(self):
        envelope = await make_pipeline(None).process(
            InboundMessage(conversation_id="c1", content="hi")
        )
        assert envelope.response_text == "Simulação: hi"
        assert envelope.action is ReplyAction.REPLY

    @pytest.mark.asyncio
    async def test_media_only_message_uses_interpretation(self):
        llm = fake_llm(
            describe_image="camiseta azul",
            complete=model_json(intent="general_query", response_text="Temos sim!"),
        )
        envelope = await make_pipeline(llm).process(
            InboundMessage(
                conversation_id="c1",
                attachments=(Attachment(type="image", url="https://cdn.example/a.jpg"),),
            )
        )
        assert envelope.response_text == "Temos sim!"
        user_turn = llm.complete.call_args.args[0][-1]
        assert user_turn["content"] == "camiseta azul (Mídia: camiseta azul)"

    @pytest.mark.asyncio
    async def test_empty_reply_gets_acknowledgement(self):
        llm = fake_llm(complete=model_json(intent="general_query", response_text=""))
        envelope = await make_pipeline(llm).process(
            InboundMessage(conversation_id="c1", content="oi")
        )
        assert envelope.response_text == 'Olá! Recebi sua mensagem: "oi".'

    @pytest.mark.asyncio
    async def test_same_input_same_output(self):
        llm = fake_llm(complete=model_json(intent="general_query", response_text="Olá!"))
        pipeline = make_pipeline(llm)
        message = InboundMessage(conversation_id="c1", content="oi")

        first = await pipeline.process(message)
        second = await pipeline.process(message)
        assert first.to_dict() == second.to_dict()
        assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())


class TestLogging:
    @pytest.mark.asyncio
    async def test_content_never_logged(self):
        """Message text and model answers must not reach the logs."""
        recorder = LogRecorder()
        llm = fake_llm(
            complete=model_json(intent="general_query", response_text="resposta secreta")
        )
        with patch("mari.domain.pipeline.logger", recorder):
            await make_pipeline(llm).process(
                InboundMessage(conversation_id="c1", content="mensagem secreta")
            )

        assert "message processed" in recorder.messages("info")
        logged = recorder.get_all_logged_content()
        assert "mensagem secreta" not in logged
        assert "resposta secreta" not in logged

        fields = recorder.extra_fields("message processed")
        assert fields["intent"] == "general_query"
        assert fields["action"] == "reply"
        assert fields["has_media"] == "false"
