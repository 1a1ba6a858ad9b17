from fastapi import APIRouter

from studykit.errors import ValidationError
from studykit.llm.llm_gateway import chat
from studykit.schemas.chat import ChatIn, ChatOut

router = APIRouter(prefix="/api", tags=["chat"])

SYSTEM_PROMPT = (
    "You are a friendly study assistant. Answer questions about study techniques, "
    "explain concepts clearly and keep answers concise."
)

@router.post("/chat", response_model=ChatOut)
def chat_message(body: ChatIn):
    message = body.message.strip()
    if not message:
        raise ValidationError("Missing or invalid message")
    return ChatOut(response=chat(SYSTEM_PROMPT, message, operation="chat"))
