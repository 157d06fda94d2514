"""
MedScope.ai - WebSocket Route
Streams follow-up chat answers token by token.
Uses asyncio.to_thread to avoid blocking the event loop.
"""
import asyncio
import json
import logging
import queue
import threading

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.schemas import ChatRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/ws/chat")
async def websocket_chat(websocket: WebSocket):
    """
    WebSocket endpoint for streaming follow-up answers.

    Protocol:
    1. Client sends JSON: {"question": "...", "session_id": "...", "analysis": "...", "api_key": "..."}
       (session_id, analysis and api_key are optional)
    2. Server streams back JSON chunks:
       - {"type": "status", "message": "Thinking...", "session_id": "..."}
       - {"type": "token", "content": "word "}
       - {"type": "done", "session_id": "..."}
       or {"type": "error", "message": "..."}
    """
    from app.chat import session_manager
    from app.routes.api import resolve_chat_session

    await websocket.accept()
    logger.info("WebSocket client connected")

    try:
        while True:
            data = await websocket.receive_text()
            try:
                payload = json.loads(data)
                request = ChatRequest(**payload)
                question = request.question.strip()
                if not question:
                    raise ValueError("Question must not be empty")
                session_id, analysis = resolve_chat_session(request)
            except (ValueError, TypeError, ValidationError) as e:
                await websocket.send_json({"type": "error", "message": f"Invalid request: {e}"})
                continue
            except HTTPException as e:
                await websocket.send_json({"type": "error", "message": e.detail})
                continue

            await websocket.send_json({"type": "status", "message": "Thinking...", "session_id": session_id})

            history = session_manager.get_history(session_id)
            api_key = payload.get("api_key")

            # Run the blocking model call in a background thread,
            # streaming chunks back through a queue
            chunk_queue = queue.Queue()

            def run_chat():
                try:
                    from core.llm_client import get_llm_client
                    client = get_llm_client(api_key)

                    parts = []
                    for token in client.answer_stream(question, analysis, history):
                        parts.append(token)
                        chunk_queue.put({"type": "token", "content": token})

                    session_manager.add_user_message(session_id, question)
                    session_manager.add_bot_message(session_id, "".join(parts).strip())
                    chunk_queue.put({"type": "done", "session_id": session_id})
                except Exception as e:
                    logger.error(f"Chat error: {e}", exc_info=True)
                    chunk_queue.put({"type": "error", "message": str(e)})
                finally:
                    chunk_queue.put(None)  # Sentinel

            thread = threading.Thread(target=run_chat, daemon=True)
            thread.start()

            # Consume chunks from the queue and send via websocket
            while True:
                chunk = await asyncio.to_thread(chunk_queue.get)
                if chunk is None:
                    break
                await websocket.send_json(chunk)

            thread.join(timeout=5)

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
