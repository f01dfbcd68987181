"""JSON envelopes exchanged with the conversion service."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ErrorEnvelope(_Envelope):
    """Body of a non-200 response: ``{"error": ..., "code": ...}``."""

    message: str = Field(alias="error")
    code: int


class CreateProcessRequest(_Envelope):
    api_key: str = Field(alias="apikey")
    input_format: str = Field(alias="inputformat")
    output_format: str = Field(alias="outputformat")


class CreateProcessResponse(_Envelope):
    url: str
    id: str
    host: str = ""
    expires: Optional[str] = None
    max_size: int = Field(default=0, alias="maxsize")
    max_time: int = Field(default=0, alias="maxtime")
    concurrent: int = 0
    minutes: int = 0


class ProcessInput(_Envelope):
    type: str = ""
    name: str = ""
    filename: str = ""
    ext: str = ""


class ProcessOutput(_Envelope):
    url: str = ""
    size: int = 0
    filename: str = ""
    ext: str = ""
    # Only present for multi-file results; order is the server's.
    files: list[str] = Field(default_factory=list)


class ProcessConverter(_Envelope):
    format: str = ""
    type: str = ""
    options: dict[str, Any] = Field(default_factory=dict)


class ProcessStatus(_Envelope):
    """Progress of a conversion job and, once finished, its output."""

    id: str
    percent: int
    message: str
    step: str
    url: str = ""
    start_time: Optional[int] = Field(default=None, alias="starttime")
    end_time: Optional[int] = Field(default=None, alias="endtime")
    expire: Optional[int] = None
    minutes: int = 0
    group: str = ""
    input: Optional[ProcessInput] = None
    output: Optional[ProcessOutput] = None
    converter: Optional[ProcessConverter] = None

    @property
    def finished(self) -> bool:
        return self.step in TERMINAL_STEPS


TERMINAL_STEPS = frozenset({"finished", "error"})
