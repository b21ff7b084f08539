from pydantic import BaseModel


class ChatRequest(BaseModel):
    # A missing or empty query is forwarded as "".
    query: str = ""


class AnswerResponse(BaseModel):
    status: str = "success"
    answer: str


class StatusResponse(BaseModel):
    status: str = "success"
