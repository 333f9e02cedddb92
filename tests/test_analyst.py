"""Tests for the mission analyst client."""

import asyncio
import json

import httpx
import pytest

from conftest import BASE_MS, make_sample
from steps_monitor.analyst import (
    MISSING_KEY_SUMMARY,
    UNAVAILABLE_SUMMARY,
    AnalysisError,
    AnalysisOutcome,
    AnalysisResult,
    HazardLevel,
    SolarAnalyst,
    build_prompt,
    build_request,
    parse_response,
)
from steps_monitor.config import AnalysisConfig


def gemini_payload(answer: object) -> dict:
    """Wrap an answer the way generateContent returns structured output."""
    text = answer if isinstance(answer, str) else json.dumps(answer)
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, respond) -> None:
        self.requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return respond(request)

        super().__init__(handler)


def window(n: int = 20) -> list:
    return [
        make_sample(timestamp=BASE_MS + i * 1000, proton_flux_high=400.0 + i) for i in range(n)
    ]


class TestBuildPrompt:
    """Tests for prompt construction."""

    def test_includes_latest_values_and_average(self) -> None:
        samples = [
            make_sample(proton_flux_low=1500.0, proton_flux_high=400.0, alpha_flux=50.0),
            make_sample(proton_flux_low=1512.345, proton_flux_high=410.0, alpha_flux=51.5),
        ]
        prompt = build_prompt(samples)

        assert "Aditya-L1" in prompt
        assert samples[-1].display_time in prompt
        assert "High Energy Proton Flux: 410.00 counts/s" in prompt
        assert "Low Energy Proton Flux: 1512.35 counts/s" in prompt
        assert "Alpha Particle Flux: 51.50 counts/s" in prompt
        assert "Average High Energy Flux (last window): 405.00 counts/s" in prompt

    def test_empty_window_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_prompt([])


def test_build_request_declares_schema() -> None:
    body = build_request("hello")
    gen = body["generationConfig"]

    assert body["contents"][0]["parts"][0]["text"] == "hello"
    assert gen["responseMimeType"] == "application/json"
    assert gen["responseSchema"]["properties"]["hazardLevel"]["enum"] == [
        "LOW",
        "MODERATE",
        "HIGH",
    ]


class TestParseResponse:
    """Tests for structured answer validation."""

    def test_valid(self) -> None:
        outcome = parse_response(
            gemini_payload({"summary": "Ambient solar wind.", "hazardLevel": "LOW"})
        )
        assert outcome == AnalysisOutcome("Ambient solar wind.", HazardLevel.LOW)

    def test_joins_text_parts(self) -> None:
        payload = {
            "candidates": [
                {
                    "content": {
                        "parts": [
                            {"text": '{"summary": "Rising flux.", '},
                            {"text": '"hazardLevel": "MODERATE"}'},
                        ]
                    }
                }
            ]
        }
        assert parse_response(payload).hazard_level is HazardLevel.MODERATE

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"candidates": []},
            gemini_payload(""),
            gemini_payload("not json at all"),
            gemini_payload(["LOW"]),
            gemini_payload({"hazardLevel": "LOW"}),
            gemini_payload({"summary": "   ", "hazardLevel": "LOW"}),
            gemini_payload({"summary": "ok", "hazardLevel": "SEVERE"}),
            gemini_payload({"summary": "ok", "hazardLevel": "UNKNOWN"}),
        ],
    )
    def test_invalid(self, payload: dict) -> None:
        with pytest.raises(AnalysisError):
            parse_response(payload)


class TestSolarAnalyst:
    """Tests for SolarAnalyst.analyze()."""

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self) -> None:
        transport = RecordingTransport(lambda r: httpx.Response(200, json={}))
        analyst = SolarAnalyst(AnalysisConfig(), api_key="", transport=transport)

        outcome = await analyst.analyze(window())

        assert outcome.summary == MISSING_KEY_SUMMARY
        assert outcome.hazard_level is HazardLevel.UNKNOWN
        assert transport.requests == []

    def test_key_read_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STEPS_TEST_KEY", "secret")
        analyst = SolarAnalyst(AnalysisConfig(api_key_env="STEPS_TEST_KEY"))
        assert analyst.has_credential

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        transport = RecordingTransport(
            lambda r: httpx.Response(
                200,
                json=gemini_payload({"summary": "Quiet conditions.", "hazardLevel": "LOW"}),
            )
        )
        analyst = SolarAnalyst(AnalysisConfig(), api_key="k-123", transport=transport)

        outcome = await analyst.analyze(window())

        assert outcome == AnalysisOutcome("Quiet conditions.", HazardLevel.LOW)
        assert len(transport.requests) == 1
        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "gemini-3-flash-preview:generateContent"
        )
        assert request.headers["x-goog-api-key"] == "k-123"
        body = json.loads(request.content)
        assert "Latest Time" in body["contents"][0]["parts"][0]["text"]

    @pytest.mark.asyncio
    async def test_http_error_falls_back(self) -> None:
        transport = RecordingTransport(lambda r: httpx.Response(500, text="boom"))
        analyst = SolarAnalyst(AnalysisConfig(), api_key="k", transport=transport)

        outcome = await analyst.analyze(window())

        assert outcome.summary == UNAVAILABLE_SUMMARY
        assert outcome.hazard_level is HazardLevel.UNKNOWN

    @pytest.mark.asyncio
    async def test_connection_error_falls_back(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        analyst = SolarAnalyst(AnalysisConfig(), api_key="k", transport=RecordingTransport(refuse))
        outcome = await analyst.analyze(window())
        assert outcome == AnalysisOutcome.unavailable()

    @pytest.mark.asyncio
    async def test_read_timeout_falls_back(self) -> None:
        def stall(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        analyst = SolarAnalyst(AnalysisConfig(), api_key="k", transport=RecordingTransport(stall))
        assert await analyst.analyze(window()) == AnalysisOutcome.unavailable()

    @pytest.mark.asyncio
    async def test_hung_request_is_bounded(self) -> None:
        """A transport that never answers still resolves within timeout_seconds."""

        async def hang(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(3600)
            return httpx.Response(200, json={})

        analyst = SolarAnalyst(
            AnalysisConfig(timeout_seconds=0.05),
            api_key="k",
            transport=httpx.MockTransport(hang),
        )

        outcome = await asyncio.wait_for(analyst.analyze(window()), timeout=2.0)

        assert outcome == AnalysisOutcome.unavailable()

    @pytest.mark.asyncio
    async def test_non_json_body_falls_back(self) -> None:
        transport = RecordingTransport(lambda r: httpx.Response(200, text="<html>"))
        analyst = SolarAnalyst(AnalysisConfig(), api_key="k", transport=transport)
        assert await analyst.analyze(window()) == AnalysisOutcome.unavailable()

    @pytest.mark.asyncio
    async def test_off_schema_answer_falls_back(self) -> None:
        transport = RecordingTransport(
            lambda r: httpx.Response(
                200, json=gemini_payload({"summary": "x", "hazardLevel": "EXTREME"})
            )
        )
        analyst = SolarAnalyst(AnalysisConfig(), api_key="k", transport=transport)
        assert await analyst.analyze(window()) == AnalysisOutcome.unavailable()

    @pytest.mark.asyncio
    async def test_empty_window_with_key_raises(self) -> None:
        transport = RecordingTransport(lambda r: httpx.Response(200, json={}))
        analyst = SolarAnalyst(AnalysisConfig(), api_key="k", transport=transport)
        with pytest.raises(ValueError):
            await analyst.analyze([])
        assert transport.requests == []

    def test_endpoint_uses_configured_model(self) -> None:
        config = AnalysisConfig(api_base="https://example.test/v1/", model="m-1")
        assert SolarAnalyst(config, api_key="k").endpoint == (
            "https://example.test/v1/models/m-1:generateContent"
        )


def test_analysis_result_from_outcome() -> None:
    result = AnalysisResult.from_outcome(AnalysisOutcome.missing_key(), last_updated="12:00:00")
    assert result.to_dict() == {
        "summary": MISSING_KEY_SUMMARY,
        "hazard_level": "UNKNOWN",
        "last_updated": "12:00:00",
    }
