from pydantic import BaseModel


class InstructionResponse(BaseModel):
    instruction: str
    source: str


class ErrorResponse(BaseModel):
    detail: str
