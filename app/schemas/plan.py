from typing import Tuple
from pydantic import BaseModel, ConfigDict, Field


class Plan(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: int = Field(gt=0)  # major currency units
    features: Tuple[str, ...] = ()
