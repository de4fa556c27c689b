from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RelayRequest(BaseModel):
    endpoint: str = Field(min_length=1)
    method: Literal["GET", "POST", "PUT", "DELETE"]
    # Any JSON value; GET never sends it, other methods need an object to enrich.
    data: Any = None
    headers: Optional[Dict[str, str]] = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @model_validator(mode="after")
    def _object_payload_for_writes(self) -> "RelayRequest":
        if self.method != "GET" and self.data is not None and not isinstance(self.data, dict):
            raise ValueError(f"data must be a JSON object for {self.method} requests")
        return self


class RelayEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    data: Any | None = None
    status: int
    status_text: str = Field(default="", alias="statusText")


class RelayErrorBody(BaseModel):
    success: bool = False
    error: str
