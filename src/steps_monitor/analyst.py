"""Mission analyst: space-weather summaries from a generative AI model.

The model is an external collaborator reached over HTTPS (Gemini
generateContent). It never decides anything the dashboard depends on; every
failure mode collapses to a fixed fallback with hazard level UNKNOWN.
"""

import asyncio
import json
import os
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

import httpx
import structlog

from steps_monitor.config import AnalysisConfig
from steps_monitor.formatting import average, format_clock
from steps_monitor.telemetry import Sample

log = structlog.get_logger()

MISSING_KEY_SUMMARY = "API Key missing. Unable to perform AI analysis on solar wind telemetry."
UNAVAILABLE_SUMMARY = "Automated analysis temporarily unavailable due to telemetry link latency."


class HazardLevel(str, Enum):
    """Coarse space-weather severity."""

    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    UNKNOWN = "UNKNOWN"


# Levels the model may return; UNKNOWN is reserved for local fallbacks
ASSESSED_LEVELS = (HazardLevel.LOW, HazardLevel.MODERATE, HazardLevel.HIGH)


class AnalysisError(Exception):
    """The model response was missing, malformed or off-schema."""


@dataclass(frozen=True)
class AnalysisOutcome:
    """What the analyst concluded about a telemetry window."""

    summary: str
    hazard_level: HazardLevel

    @classmethod
    def missing_key(cls) -> "AnalysisOutcome":
        return cls(summary=MISSING_KEY_SUMMARY, hazard_level=HazardLevel.UNKNOWN)

    @classmethod
    def unavailable(cls) -> "AnalysisOutcome":
        return cls(summary=UNAVAILABLE_SUMMARY, hazard_level=HazardLevel.UNKNOWN)


@dataclass(frozen=True)
class AnalysisResult:
    """Latest analysis shown on the dashboard. Replaced wholesale, never merged."""

    summary: str
    hazard_level: HazardLevel
    last_updated: str  # HH:MM:SS when the analysis completed

    @classmethod
    def from_outcome(
        cls, outcome: AnalysisOutcome, last_updated: str | None = None
    ) -> "AnalysisResult":
        return cls(
            summary=outcome.summary,
            hazard_level=outcome.hazard_level,
            last_updated=last_updated or format_clock(),
        )

    def to_dict(self) -> dict:
        """Serialize to a dictionary."""
        return {
            "summary": self.summary,
            "hazard_level": self.hazard_level.value,
            "last_updated": self.last_updated,
        }


def build_prompt(samples: Sequence[Sample]) -> str:
    """Build the analyst prompt for a window of samples.

    Only the latest sample and the window's mean high-energy flux are sent,
    which keeps the prompt small regardless of window size.

    Raises:
        ValueError: If samples is empty.
    """
    if not samples:
        raise ValueError("Cannot build prompt from an empty telemetry window")

    last = samples[-1]
    avg_high = average([s.proton_flux_high for s in samples])

    return f"""
You are an expert Solar Physicist analyzing telemetry from the ISRO Aditya-L1 ASPEX-STEPS instrument.

Current Telemetry Snapshot (Supra Thermal Energetic Particle Spectrometer):
- Latest Time: {last.display_time}
- High Energy Proton Flux: {last.proton_flux_high:.2f} counts/s
- Low Energy Proton Flux: {last.proton_flux_low:.2f} counts/s
- Alpha Particle Flux: {last.alpha_flux:.2f} counts/s
- Average High Energy Flux (last window): {avg_high:.2f} counts/s

Analyze this data for potential Space Weather events (CMEs, Solar Flares, SEP events).
Is the vehicle in a safe ambient solar wind stream or is there a disturbance?
Keep the summary concise (max 2 sentences).
"""


def build_request(prompt: str) -> dict:
    """Build the generateContent request body with a JSON response schema."""
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": {
                "type": "OBJECT",
                "properties": {
                    "summary": {"type": "STRING"},
                    "hazardLevel": {
                        "type": "STRING",
                        "enum": [level.value for level in ASSESSED_LEVELS],
                    },
                },
                "required": ["summary", "hazardLevel"],
            },
        },
    }


def parse_response(payload: dict) -> AnalysisOutcome:
    """Extract and validate the structured answer from a generateContent response.

    Raises:
        AnalysisError: If there is no text, the text is not JSON, or the JSON
            does not match {summary: str, hazardLevel: LOW|MODERATE|HIGH}.
    """
    try:
        parts = payload["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts)
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise AnalysisError(f"Unexpected response shape: {e!r}") from e

    if not text:
        raise AnalysisError("No response from AI")

    try:
        answer = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Response is not JSON: {e}") from e

    if not isinstance(answer, dict):
        raise AnalysisError(f"Expected a JSON object, got {type(answer).__name__}")

    summary = answer.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise AnalysisError("Response has no summary")

    level = answer.get("hazardLevel")
    valid = {lvl.value for lvl in ASSESSED_LEVELS}
    if level not in valid:
        raise AnalysisError(f"Invalid hazardLevel: {level!r}. Must be one of {sorted(valid)}")

    return AnalysisOutcome(summary=summary.strip(), hazard_level=HazardLevel(level))


class SolarAnalyst:
    """Client for the summarization model.

    The credential comes from the environment variable named in the config
    unless passed explicitly. A custom httpx transport can be injected.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._api_key = api_key if api_key is not None else os.environ.get(config.api_key_env, "")
        self._transport = transport

    @property
    def has_credential(self) -> bool:
        """True if an API key is configured."""
        return bool(self._api_key)

    @property
    def endpoint(self) -> str:
        """Full generateContent URL for the configured model."""
        return f"{self.config.api_base.rstrip('/')}/models/{self.config.model}:generateContent"

    def _timeout(self) -> float:
        return self.config.timeout_seconds

    async def _post(self, body: dict) -> dict:
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout()) as client:
            resp = await client.post(
                self.endpoint,
                json=body,
                headers={"x-goog-api-key": self._api_key},
            )
            resp.raise_for_status()
            try:
                return resp.json()
            except ValueError as e:
                raise AnalysisError(f"Response body is not JSON: {e}") from e

    async def analyze(self, samples: Sequence[Sample]) -> AnalysisOutcome:
        """Summarize a telemetry window.

        Never raises for collaborator problems: a missing key or any call
        failure returns a fallback outcome with hazard level UNKNOWN.

        Raises:
            ValueError: If samples is empty.
        """
        if not self.has_credential:
            log.info("analysis_no_credential", env=self.config.api_key_env)
            return AnalysisOutcome.missing_key()

        prompt = build_prompt(samples)

        try:
            # Bounds the whole call, including transports that never time out themselves
            payload = await asyncio.wait_for(
                self._post(build_request(prompt)), timeout=self._timeout()
            )
            outcome = parse_response(payload)
        except (httpx.HTTPError, AnalysisError, asyncio.TimeoutError) as e:
            log.error(
                "analysis_failed",
                model=self.config.model,
                error_type=type(e).__name__,
                error=str(e),
            )
            return AnalysisOutcome.unavailable()

        log.info(
            "analysis_received",
            model=self.config.model,
            hazard_level=outcome.hazard_level.value,
            samples=len(samples),
        )
        return outcome
