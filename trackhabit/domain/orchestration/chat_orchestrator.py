from typing import TypedDict, Annotated, List, Dict, Any, Optional, Protocol
from datetime import date
import operator

from langgraph.graph import StateGraph, END
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
import structlog

from trackhabit.domain.action.action_executor import ActionExecutor
from trackhabit.domain.action.action_extractor import ActionExtractor, ExtractionResult
from trackhabit.domain.action.action_registry import action_registry
from trackhabit.domain.context.context_assembler import ContextAssembler
from trackhabit.domain.context.prompt_composer import compose_system_prompt
from trackhabit.domain.errors import TrackHabitError
from trackhabit.domain.models.chat_state import AppliedAction, ChatResponse, ContextBundle, UserTurn
from trackhabit.domain.models.entities import ChatRole, SessionContext
from trackhabit.domain.services.workspace import ChatHistoryService
from trackhabit.infrastructure.config import Settings
from trackhabit.infrastructure.llm.model_client import ModelReply
from trackhabit.infrastructure.observability.langfuse_tracing import traced, update_trace
from trackhabit.infrastructure.observability.logging import assistant_logger
from trackhabit.infrastructure.persistence.base import DataStore

logger = structlog.get_logger(__name__)


class CompletionClient(Protocol):
    async def complete(
        self,
        system: SystemMessage,
        history: List[BaseMessage],
        user_turn: UserTurn,
        tools: Optional[List[Dict[str, Any]]] = None
    ) -> ModelReply:
        ...


class ChatTurnState(TypedDict, total=False):
    """State for the chat-turn graph"""
    session: SessionContext
    user_turn: UserTurn
    today: date
    context: ContextBundle
    system_message: SystemMessage
    history: List[BaseMessage]
    reply: ModelReply
    extraction: ExtractionResult
    applied: List[AppliedAction]
    response: ChatResponse
    trace: Annotated[List[str], operator.add]


class ChatOrchestrator:
    """Runs one chat turn: context, prompt, model call, intents, effects, response"""

    def __init__(self, store: DataStore, model_client: CompletionClient, settings: Settings):
        self.settings = settings
        self.model_client = model_client
        self.assembler = ContextAssembler(store)
        self.extractor = ActionExtractor(mode=settings.action_extraction_mode)
        self.executor = ActionExecutor(store)
        self.history = ChatHistoryService(store)
        self.workflow = self._create_workflow()
        self.process_turn = traced("chat_turn")(self.process_turn)

    def _create_workflow(self):
        """Create the chat-turn graph"""

        workflow = StateGraph(ChatTurnState)

        workflow.add_node("assemble_context", self.assemble_context_node)
        workflow.add_node("compose_prompt", self.compose_prompt_node)
        workflow.add_node("call_model", self.call_model_node)
        workflow.add_node("extract_actions", self.extract_actions_node)
        workflow.add_node("apply_actions", self.apply_actions_node)
        workflow.add_node("compose_response", self.compose_response_node)

        workflow.set_entry_point("assemble_context")

        workflow.add_edge("assemble_context", "compose_prompt")
        workflow.add_edge("compose_prompt", "call_model")
        workflow.add_edge("call_model", "extract_actions")
        workflow.add_edge("extract_actions", "apply_actions")
        workflow.add_edge("apply_actions", "compose_response")
        workflow.add_edge("compose_response", END)

        return workflow.compile()

    async def assemble_context_node(self, state: ChatTurnState) -> Dict[str, Any]:
        bundle = await self.assembler.assemble(state["session"])
        logger.info("Context assembled", fragments=self.assembler.summarize(bundle))
        return {"context": bundle, "trace": ["assemble_context"]}

    async def compose_prompt_node(self, state: ChatTurnState) -> Dict[str, Any]:
        """Build the system message and replay recent history"""

        bundle = state["context"]
        system = compose_system_prompt(
            bundle,
            today=state["today"],
            locale=self.settings.assistant_locale,
            tool_calls=self.settings.assistant_tool_calls
        )

        history: List[BaseMessage] = []
        for message in bundle.history.items:
            if message.role == ChatRole.USER:
                history.append(HumanMessage(content=message.content))
            else:
                history.append(AIMessage(content=message.content))

        return {"system_message": system, "history": history, "trace": ["compose_prompt"]}

    async def call_model_node(self, state: ChatTurnState) -> Dict[str, Any]:
        tools = action_registry.tool_definitions() if self.settings.assistant_tool_calls else None
        reply = await self.model_client.complete(
            state["system_message"],
            state["history"],
            state["user_turn"],
            tools=tools
        )
        return {"reply": reply, "trace": ["call_model"]}

    async def extract_actions_node(self, state: ChatTurnState) -> Dict[str, Any]:
        reply = state["reply"]
        extraction = self.extractor.extract(reply.text, reply.tool_calls)
        return {"extraction": extraction, "trace": ["extract_actions"]}

    async def apply_actions_node(self, state: ChatTurnState) -> Dict[str, Any]:
        applied = await self.executor.execute_batch(state["extraction"].intents, state["session"])
        return {"applied": applied, "trace": ["apply_actions"]}

    async def compose_response_node(self, state: ChatTurnState) -> Dict[str, Any]:
        """Record the turn in the chat log and build the response"""

        session = state["session"]
        reply = state["reply"]
        applied = state.get("applied", [])

        try:
            await self.history.append_turn(session, state["user_turn"].history_text(), reply.text)
        except TrackHabitError as e:
            logger.error("Failed to record chat history", user_id=session.user_id, error=e.message)
        except Exception as e:
            logger.exception("Failed to record chat history", user_id=session.user_id, error=str(e))

        assistant_logger.log_chat_turn(
            user_id=session.user_id,
            intents=len(state["extraction"].intents),
            applied=[action.type for action in applied],
            failed_fragments=state["context"].failed_fragments()
        )

        response = ChatResponse(message=reply.text, actions=[action.to_payload() for action in applied])
        return {"response": response, "trace": ["compose_response"]}

    async def process_turn(
        self,
        session: SessionContext,
        user_turn: UserTurn,
        today: Optional[date] = None
    ) -> ChatResponse:
        """Process one chat turn through the workflow"""

        update_trace(session.user_id, has_audio=user_turn.has_audio)

        initial_state: ChatTurnState = {
            "session": session,
            "user_turn": user_turn,
            "today": today or date.today(),
            "applied": [],
            "trace": [],
        }

        final_state = await self.workflow.ainvoke(initial_state)
        return final_state["response"]
