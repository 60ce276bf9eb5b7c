from typing import Literal

from pydantic import BaseModel


class TagClassification(BaseModel):
    type: Literal["universal", "contextual"]
