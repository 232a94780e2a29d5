"""End-to-end tests for ``run_pipeline`` and the step log.

The target page, the Unstructured API and the OpenAI embeddings API are all
served by ``respx``; the chat model is a ``MagicMock`` returned from a
patched ``_get_llm``.  The cache lives under ``tmp_path``.
"""

from __future__ import annotations

import json
import re
from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx

from pageqa.config import QueryConfig, Settings, settings as global_settings
from pageqa.errors import EmbeddingError, ExtractionError, NetworkError
from pageqa.pipeline import run_pipeline
from pageqa.steplog import StepLog

_URL = "https://example.test/page"
_QUESTION = "What is the second story?"
_API_URL = "https://unstructured.test/general/v0/general"
_EMBED_URL = f"{global_settings.openai_base_url}/embeddings"

_HTML = """\
<html><body>
<p>Story one: a new Rust compiler release.</p>
<p>Story two: Python packaging gets simpler.</p>
<p>Story three: SQLite adds vector search.</p>
</body></html>
"""

_TEXTS = [
    "Story one: a new Rust compiler release.",
    "Story two: Python packaging gets simpler.",
    "Story three: SQLite adds vector search.",
]

_ELEMENTS = [
    {"type": "NarrativeText", "element_id": f"e{i}", "text": t, "metadata": {"filename": "response.html"}}
    for i, t in enumerate(_TEXTS)
]

# One axis per story; the question leans toward stories two and three.
_EMBEDDINGS = {
    _TEXTS[0]: [1.0, 0.0, 0.0],
    _TEXTS[1]: [0.0, 1.0, 0.0],
    _TEXTS[2]: [0.0, 0.0, 1.0],
    _QUESTION: [0.1, 1.0, 0.5],
}


def _embedding_handler(request: httpx.Request) -> httpx.Response:
    inputs = json.loads(request.content)["input"]
    return httpx.Response(
        200,
        json={
            "data": [
                {"index": i, "embedding": _EMBEDDINGS[text]}
                for i, text in enumerate(inputs)
            ]
        },
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def run_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("UNSTRUCTURED_API_KEY", "u-test")
    return Settings(
        cache_dir=tmp_path / "cache",
        unstructured_api_url=_API_URL,
        top_k=2,
        embedding_batch_size=2,
    )


@pytest.fixture()
def lines() -> list[str]:
    return []


@pytest.fixture()
def log(lines: list[str]) -> StepLog:
    return StepLog(echo=lines.append)


@pytest.fixture()
def llm() -> MagicMock:
    model = MagicMock()
    model.invoke.return_value = MagicMock(
        content="The second story is about Python packaging getting simpler."
    )
    return model


# ---------------------------------------------------------------------------
# StepLog
# ---------------------------------------------------------------------------

class TestStepLog:
    def test_line_format(self, log: StepLog, lines: list[str]) -> None:
        log.step("Starting pipeline")
        assert re.fullmatch(r"\[\d+\.\d{2}s\] Step 1: Starting pipeline", lines[0])

    def test_steps_increment(self, log: StepLog, lines: list[str]) -> None:
        log.step("a")
        log.step("b")
        assert lines[1].endswith("Step 2: b")
        assert log.current_step == 3

    def test_response_printed_after_step_line(self, log: StepLog, lines: list[str]) -> None:
        log.step("QA Response", "forty-two")
        assert lines[0].endswith("Step 1: QA Response")
        assert lines[1] == "forty-two"

    def test_elapsed_is_measured_from_start(self) -> None:
        log = StepLog(start=0.0, echo=lambda _: None)
        with patch("pageqa.steplog.time.perf_counter", return_value=3.5):
            assert log.step("late") == "[3.50s] Step 1: late"


# ---------------------------------------------------------------------------
# run_pipeline
# ---------------------------------------------------------------------------

class TestRunPipeline:
    def test_end_to_end_answers_from_top_two_fragments(
        self, run_settings: Settings, log: StepLog, lines: list[str], llm: MagicMock
    ) -> None:
        config = QueryConfig(url=_URL, question=_QUESTION)

        with respx.mock:
            respx.get(_URL).mock(return_value=httpx.Response(200, text=_HTML))
            respx.post(_API_URL).mock(return_value=httpx.Response(200, json=_ELEMENTS))
            respx.post(_EMBED_URL).mock(side_effect=_embedding_handler)
            with patch("pageqa.rag.answerer._get_llm", return_value=llm):
                answer = run_pipeline(config, run_settings, log)

        assert answer.text
        assert [f.text for f in answer.sources] == [_TEXTS[1], _TEXTS[2]]

        prompt = llm.invoke.call_args.args[0]
        assert _QUESTION in prompt
        assert _TEXTS[1] in prompt and _TEXTS[2] in prompt
        assert _TEXTS[0] not in prompt

        cache_file = run_settings.cache_dir / "response.html"
        assert cache_file.read_bytes() == _HTML.encode("utf-8")

        assert any("Extracted data converted into 3 fragments" in line for line in lines)
        assert answer.text in lines
        assert lines[-1].endswith("Step 11: Execution timing ended")

    def test_second_run_keeps_single_cache_file(
        self, run_settings: Settings, llm: MagicMock
    ) -> None:
        config = QueryConfig(url=_URL, question=_QUESTION)
        quiet = lambda _: None  # noqa: E731

        with respx.mock:
            respx.get(_URL).mock(return_value=httpx.Response(200, text=_HTML))
            respx.post(_API_URL).mock(return_value=httpx.Response(200, json=_ELEMENTS))
            respx.post(_EMBED_URL).mock(side_effect=_embedding_handler)
            with patch("pageqa.rag.answerer._get_llm", return_value=llm):
                run_pipeline(config, run_settings, StepLog(echo=quiet))
                run_pipeline(config, run_settings, StepLog(echo=quiet))

        assert [p.name for p in run_settings.cache_dir.iterdir()] == ["response.html"]

    def test_fetch_failure_aborts_before_cache(
        self, run_settings: Settings, log: StepLog, lines: list[str]
    ) -> None:
        config = QueryConfig(url=_URL, question=_QUESTION)

        with respx.mock:
            respx.get(_URL).mock(return_value=httpx.Response(500))
            with (
                patch("pageqa.pipeline.extract_fragments") as extract,
                patch("pageqa.pipeline.VectorIndex") as index_cls,
                patch("pageqa.pipeline.answer_question") as answer,
            ):
                with pytest.raises(NetworkError) as excinfo:
                    run_pipeline(config, run_settings, log)

        assert excinfo.value.status_code == 500
        assert not (run_settings.cache_dir / "response.html").exists()
        extract.assert_not_called()
        index_cls.from_fragments.assert_not_called()
        answer.assert_not_called()
        assert len(lines) == 2

    def test_extraction_failure_stops_before_indexing(
        self, run_settings: Settings, log: StepLog
    ) -> None:
        config = QueryConfig(url=_URL, question=_QUESTION)

        with respx.mock:
            respx.get(_URL).mock(return_value=httpx.Response(200, text=_HTML))
            respx.post(_API_URL).mock(return_value=httpx.Response(403))
            with patch("pageqa.pipeline.embed_texts") as embed:
                with pytest.raises(ExtractionError):
                    run_pipeline(config, run_settings, log)

        embed.assert_not_called()
        assert (run_settings.cache_dir / "response.html").exists()

    def test_no_fragments_fails_fast_at_indexing(
        self, run_settings: Settings, log: StepLog
    ) -> None:
        config = QueryConfig(url=_URL, question=_QUESTION)

        with (
            patch("pageqa.pipeline.fetch_url") as fetch,
            patch("pageqa.pipeline.extract_fragments", return_value=[]),
            patch("pageqa.pipeline.embed_texts") as embed,
            patch("pageqa.pipeline.answer_question") as answer,
        ):
            fetch.return_value.html = _HTML
            with pytest.raises(EmbeddingError, match="No content"):
                run_pipeline(config, run_settings, log)

        embed.assert_not_called()
        answer.assert_not_called()

    def test_embedding_batch_failure_aborts(
        self, run_settings: Settings, log: StepLog, llm: MagicMock
    ) -> None:
        config = QueryConfig(url=_URL, question=_QUESTION)

        def failing_handler(request: httpx.Request) -> httpx.Response:
            if _TEXTS[2] in json.loads(request.content)["input"]:
                return httpx.Response(502)
            return _embedding_handler(request)

        with respx.mock:
            respx.get(_URL).mock(return_value=httpx.Response(200, text=_HTML))
            respx.post(_API_URL).mock(return_value=httpx.Response(200, json=_ELEMENTS))
            respx.post(_EMBED_URL).mock(side_effect=failing_handler)
            with patch("pageqa.rag.answerer._get_llm", return_value=llm):
                with pytest.raises(EmbeddingError):
                    run_pipeline(config, run_settings, log)

        llm.invoke.assert_not_called()

    def test_passed_settings_choose_models_and_base_url(
        self, run_settings: Settings, log: StepLog, llm: MagicMock
    ) -> None:
        config = QueryConfig(url=_URL, question=_QUESTION)
        custom = replace(
            run_settings,
            openai_base_url="https://llm.test/v1",
            openai_embed_model="custom-embed",
            openai_chat_model="custom-chat",
        )

        with respx.mock:
            respx.get(_URL).mock(return_value=httpx.Response(200, text=_HTML))
            respx.post(_API_URL).mock(return_value=httpx.Response(200, json=_ELEMENTS))
            route = respx.post("https://llm.test/v1/embeddings").mock(
                side_effect=_embedding_handler
            )
            with patch("langchain_openai.ChatOpenAI", return_value=llm) as chat_cls:
                run_pipeline(config, custom, log)

        # Two index batches plus the query embedding.
        assert route.call_count == 3
        models = {json.loads(call.request.content)["model"] for call in route.calls}
        assert models == {"custom-embed"}
        chat_cls.assert_called_once()
        assert chat_cls.call_args.kwargs["model"] == "custom-chat"
        assert chat_cls.call_args.kwargs["base_url"] == "https://llm.test/v1"

    def test_passed_settings_set_extraction_timeout(
        self, run_settings: Settings, log: StepLog
    ) -> None:
        config = QueryConfig(url=_URL, question=_QUESTION)
        custom = replace(run_settings, extraction_timeout=7.5)

        with respx.mock:
            respx.get(_URL).mock(return_value=httpx.Response(200, text=_HTML))
            route = respx.post(_API_URL).mock(return_value=httpx.Response(403))
            with pytest.raises(ExtractionError):
                run_pipeline(config, custom, log)

        assert route.calls.last.request.extensions["timeout"]["read"] == 7.5
