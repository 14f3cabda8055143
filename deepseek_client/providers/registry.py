"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体模型 ID”解耦：

- 逻辑名（logical_name）：代码里使用的统一名称，例如 "primary"。
- provider_model：DeepSeek 实际提供的模型 ID，例如 "deepseek-chat"。

上层只关心逻辑名，具体用哪个底层模型由这里集中配置。"""

from dataclasses import dataclass
from typing import Dict

from deepseek_client.domain.exceptions import ValidationError


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str


@dataclass
class ProviderConfig:
    """Provider 的整体配置。"""

    name: str
    base_url: str
    completions_path: str
    models: Dict[str, ModelConfig]


DEEPSEEK_CONFIG = ProviderConfig(
    name="deepseek",
    base_url="https://api.deepseek.com",
    completions_path="/chat/completions",
    models={
        "primary": ModelConfig(logical_name="primary", provider_model="deepseek-chat"),
        "reasoner": ModelConfig(logical_name="reasoner", provider_model="deepseek-reasoner"),
    },
)


def get_model_config(name: str) -> ModelConfig:
    """根据逻辑名获取 ModelConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in DEEPSEEK_CONFIG.models.items():
        if k.lower() == key:
            return cfg
    raise ValidationError(code="UNKNOWN_MODEL", message=f"Unknown model: {name!r}")
