"""LLM judge fallback: transports, cache, circuit breaker and client."""
from judge.cache import JudgeCache, make_cache_key
from judge.circuit_breaker import CircuitBreaker, CircuitBreakerState
from judge.client import JudgeClient, parse_judge_score
from judge.transport import AnthropicTransport, GroqTransport, JudgeTransport

__all__ = [
    "JudgeCache",
    "make_cache_key",
    "CircuitBreaker",
    "CircuitBreakerState",
    "JudgeClient",
    "parse_judge_score",
    "AnthropicTransport",
    "GroqTransport",
    "JudgeTransport",
]
