import pytest

from deepseek_client.domain.exceptions import ValidationError
from deepseek_client.providers.registry import DEEPSEEK_CONFIG, get_model_config


def test_logical_models_map_to_provider_ids():
    assert get_model_config("primary").provider_model == "deepseek-chat"
    assert get_model_config("Reasoner").provider_model == "deepseek-reasoner"
    assert set(DEEPSEEK_CONFIG.models) == {"primary", "reasoner"}


def test_unknown_model():
    with pytest.raises(ValidationError) as ei:
        get_model_config("deepseek-coder")
    assert ei.value.code == "UNKNOWN_MODEL"
