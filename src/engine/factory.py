"""Engine construction from environment and YAML configuration.

Hosts that embed the engine call ``create_engine()`` once at startup and
share the returned instance across requests.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

import structlog
from dotenv import load_dotenv

from config.loader import build_engine_config, validate_config
from engine.service import TraceabilityEngine
from judge.transport import AnthropicTransport, GroqTransport, JudgeTransport
from models.engine_config import EngineConfig
from telemetry.audit import AuditSink
from telemetry.metrics import MetricsSink
from utils.llm_client import get_groq_http_client

logger = structlog.get_logger(__name__)


def configure_logging(log_level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, str(log_level).upper(), logging.INFO))

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)


def build_transport(config: EngineConfig) -> Optional[JudgeTransport]:
    """Pick the judge transport for the configured provider.

    Returns None when the judge is disabled or its API key is missing, in
    which case the engine runs TF-IDF only.
    """
    if not config.features.use_llm_judge:
        logger.info("judge_disabled")
        return None
    if not validate_config(config.judge.provider):
        return None

    judge = config.judge
    if judge.provider == "anthropic":
        return AnthropicTransport(
            model=judge.anthropic_model,
            temperature=judge.temperature,
            max_tokens=judge.max_tokens,
        )
    if judge.provider != "groq":
        logger.warning("judge_provider_unknown", provider=judge.provider, fallback="groq")

    return GroqTransport(
        client=get_groq_http_client(os.getenv("GROQ_API_KEY", "")),
        model=judge.model,
        temperature=judge.temperature,
        max_tokens=judge.max_tokens,
    )


def create_engine(
    dotenv_path: Optional[str] = ".env",
    config: Optional[EngineConfig] = None,
    transport: Optional[JudgeTransport] = None,
    metrics: Optional[MetricsSink] = None,
    audit: Optional[AuditSink] = None,
    log_level: Optional[str] = None,
) -> TraceabilityEngine:
    if log_level:
        configure_logging(log_level)
    if dotenv_path:
        load_dotenv(dotenv_path)

    config = config or build_engine_config()
    if transport is None:
        transport = build_transport(config)

    logger.info(
        "engine_created",
        engine_version=config.version.engine,
        similarity_engine=config.version.similarity,
        build=config.version.build,
        judge=getattr(transport, "name", None),
    )
    return TraceabilityEngine(config=config, transport=transport, metrics=metrics, audit=audit)
