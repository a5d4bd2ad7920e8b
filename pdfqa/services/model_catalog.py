"""
Answer models offered to the client.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ModelInfo(BaseModel):
    id: str
    name: str
    description: str
    capabilities: List[str] = Field(default_factory=list)
    context_window: int
    cost: str
    is_default: bool = False
    available: bool = True


AVAILABLE_MODELS: List[ModelInfo] = [
    ModelInfo(
        id="o4-mini",
        name="o4-mini (Not Yet Available)",
        description="Compact high-performance model with strong reasoning capabilities.",
        capabilities=["Efficient reasoning", "Advanced document understanding", "Mathematical equation support"],
        context_window=64000,
        cost="Low",
        available=False,
    ),
    ModelInfo(
        id="o3-mini",
        name="o3-mini",
        description="Compact high-reasoning model for efficient document processing.",
        capabilities=["Efficient reasoning", "Fast document processing", "Good for complex tasks"],
        context_window=16000,
        cost="Very Low",
        is_default=True,
    ),
    ModelInfo(
        id="gpt-4o-mini",
        name="GPT-4o mini",
        description="The assistant's configured model.",
        capabilities=["Fast answers", "General document QA"],
        context_window=128000,
        cost="Very Low",
    ),
]


def get_model(model_id: str) -> Optional[ModelInfo]:
    return next((m for m in AVAILABLE_MODELS if m.id == model_id), None)


def get_default_model() -> ModelInfo:
    for model in AVAILABLE_MODELS:
        if model.is_default:
            return model
    return next((m for m in AVAILABLE_MODELS if m.available), AVAILABLE_MODELS[0])


def is_valid_model(model_id: Optional[str]) -> bool:
    model = get_model(model_id) if model_id else None
    return model is not None and model.available


def resolve_model_id(model_id: Optional[str]) -> str:
    """Requested model if it is offered and available, else the default."""
    return model_id if is_valid_model(model_id) else get_default_model().id
