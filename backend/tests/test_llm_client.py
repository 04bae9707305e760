from types import SimpleNamespace

from core.llm_client import LLMClient, extract_json_object


def test_extract_json_object_from_prose():
    text = 'Here you go:\n```json\n{"should_order": true, "reason": "Two cases left"}\n```'
    assert extract_json_object(text) == {"should_order": True, "reason": "Two cases left"}


def test_extract_json_object_untrusted_input():
    assert extract_json_object(None) is None
    assert extract_json_object("no braces here") is None
    assert extract_json_object("{broken: json}") is None


async def test_complete_returns_message_text(monkeypatch):
    calls = []

    async def fake_acompletion(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="hello"))])

    monkeypatch.setattr("core.llm_client.acompletion", fake_acompletion)

    reply = await LLMClient(model="test-model").complete([{"role": "user", "content": "hi"}])

    assert reply == "hello"
    assert calls[0]["model"] == "test-model"


async def test_complete_empty_content(monkeypatch):
    async def fake_acompletion(**kwargs):
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=None))])

    monkeypatch.setattr("core.llm_client.acompletion", fake_acompletion)
    assert await LLMClient(model="m").complete([]) == ""


async def test_transcribe_strips_text(monkeypatch):
    async def fake_atranscription(**kwargs):
        assert kwargs["file"][0] == "clip.webm"
        return {"text": "  hello there \n"}

    monkeypatch.setattr("core.llm_client.atranscription", fake_atranscription)
    assert await LLMClient(transcription_model="t").transcribe("clip.webm", b"...") == "hello there"
