from pydantic import BaseModel, Field

class ChatIn(BaseModel):
    message: str = Field(max_length=4000)

class ChatOut(BaseModel):
    response: str
