# test/conftest.py
import pytest

from turnguard.config import Settings, get_settings
from turnguard.postprocess import PostProcessor, StaticHistory
from turnguard.routing import HeuristicFlagExtractor, RouterService
from turnguard.safety import SafetyClassifier
from turnguard.types import PostProcessInput, TurnContext, UserState


@pytest.fixture(autouse=True)
def fresh_settings_cache():
    """Settings are lru-cached; make env overrides in one test invisible to the next."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def extractor():
    return HeuristicFlagExtractor()


@pytest.fixture
def classifier():
    return SafetyClassifier()


@pytest.fixture
def router(classifier, settings):
    return RouterService(safety_classifier=classifier, settings=settings)


@pytest.fixture
def make_ctx():
    def _make(text: str, *, tokens=None, state=UserState.ACTIVE, topics=(), age_band="25-34", norm=None):
        return TurnContext(
            norm_no_punct=text,
            token_estimate=len(text.split()) if tokens is None else tokens,
            user_state=state,
            topic_matches=topics,
            age_band=age_band,
            norm=norm,
        )

    return _make


@pytest.fixture
def make_processor(settings):
    def _make(recent=(), conversation_id="conv-1", cfg=None):
        return PostProcessor(StaticHistory({conversation_id: recent}), settings=cfg or settings)

    return _make


@pytest.fixture
def make_input():
    def _make(**overrides):
        base = dict(
            draft_content="Hello, how are you today?",
            conversation_id="conv-1",
            surfaced_memory_ids=(),
            user_message="hey there",
            is_retention=False,
        )
        base.update(overrides)
        return PostProcessInput(**base)

    return _make
