import pydantic
import pytest

from warrens_core import DEFAULT_TIMER_STEPS, EngineSettings, ValidationError


def test_defaults():
    settings = EngineSettings()
    assert settings.host_may_submit is True
    assert settings.one_active_challenge_per_host is True
    assert settings.tie_policy == "earliest_submission"
    assert settings.timer_steps == DEFAULT_TIMER_STEPS


def test_from_env_reads_flags():
    settings = EngineSettings.from_env(
        {
            "WARRENS_HOST_MAY_SUBMIT": "no",
            "WARRENS_ONE_ACTIVE_PER_HOST": "0",
            "WARRENS_TIE_POLICY": " Shared ",
        }
    )
    assert settings.host_may_submit is False
    assert settings.one_active_challenge_per_host is False
    assert settings.tie_policy == "shared"


def test_from_env_empty_uses_defaults():
    assert EngineSettings.from_env({}) == EngineSettings()


@pytest.mark.parametrize(
    "env",
    [
        {"WARRENS_HOST_MAY_SUBMIT": "maybe"},
        {"WARRENS_TIE_POLICY": "coin-flip"},
    ],
)
def test_from_env_rejects_bad_values(env):
    with pytest.raises(ValidationError):
        EngineSettings.from_env(env)


def test_timer_steps_must_not_grow():
    with pytest.raises(pydantic.ValidationError):
        EngineSettings(timer_steps={2: 14, 3: 21})
    with pytest.raises(pydantic.ValidationError):
        EngineSettings(timer_steps={})
    with pytest.raises(pydantic.ValidationError):
        EngineSettings(timer_steps={0: 5})
    assert EngineSettings(timer_steps={4: 7, 2: 10}).timer_steps == {2: 10, 4: 7}


def test_settings_are_frozen():
    settings = EngineSettings()
    with pytest.raises(pydantic.ValidationError):
        settings.host_may_submit = False
