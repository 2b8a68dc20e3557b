"""
Chat Assistant Module

Keyword help answers plus a conversational transfer flow. The flow collects
the receiver and the amount over several messages and, only after an explicit
confirmation, issues a single ``transfer_money`` call.

    idle --"send to bob@upi"--> awaiting_amount --"250"--> awaiting_confirmation
    awaiting_confirmation --"yes"--> (transfer) --> idle
    any state --"cancel"--> idle
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Dict, Optional
from enum import Enum
import re
import threading

from .money import format_amount, parse_amount
from .queries import BankingQueries
from .transfers import TransferOrchestrator
from .exceptions import BankingError, InvalidAmountError


class ConversationState(Enum):
    IDLE = "idle"
    AWAITING_AMOUNT = "awaiting_amount"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


RESPONSES = {
    "transaction": "Your recent transactions are shown in the transaction history section.",
    "fraud": "If you notice any suspicious activity, please check the fraud alerts section.",
    "help": ("I'm here to help! You can ask me about your balance, transactions, or fraud alerts, "
             "or say 'send to name@upi' to transfer money."),
}

TRANSFER_WORDS = ("send", "transfer", "pay")
CONFIRM_WORDS = {"yes", "y", "confirm", "ok", "okay"}
DECLINE_WORDS = {"no", "n"}
CANCEL_WORDS = {"cancel", "stop", "abort"}

UPI_IN_TEXT = re.compile(r'[A-Za-z0-9][A-Za-z0-9._-]*@[A-Za-z][A-Za-z0-9]*')
AMOUNT_IN_TEXT = re.compile(r'-?\d+(?:\.\d+)?')


@dataclass
class TransferConversation:
    """Per-user progress through the transfer flow"""
    user_id: int
    state: ConversationState = ConversationState.IDLE
    receiver_upi_id: Optional[str] = None
    receiver_name: Optional[str] = None
    amount: Optional[Decimal] = None

    def reset(self) -> None:
        self.state = ConversationState.IDLE
        self.receiver_upi_id = None
        self.receiver_name = None
        self.amount = None


@dataclass
class ChatReply:
    reply: str
    state: ConversationState


class TransferAssistant:
    """Keeps one conversation per user in memory"""

    def __init__(self, queries: BankingQueries, orchestrator: TransferOrchestrator):
        self.queries = queries
        self.orchestrator = orchestrator
        self._conversations: Dict[int, TransferConversation] = {}
        self._lock = threading.Lock()

    def get_conversation(self, user_id: int) -> TransferConversation:
        with self._lock:
            if user_id not in self._conversations:
                self._conversations[user_id] = TransferConversation(user_id=user_id)
            return self._conversations[user_id]

    def handle_message(self, user_id: int, text: str) -> ChatReply:
        """Advance the user's conversation by one message"""
        conversation = self.get_conversation(user_id)
        message = text.strip()
        words = set(re.findall(r"[a-z]+", message.lower()))

        if words & CANCEL_WORDS and conversation.state != ConversationState.IDLE:
            conversation.reset()
            return ChatReply("Transfer cancelled.", conversation.state)

        if conversation.state == ConversationState.AWAITING_AMOUNT:
            reply = self._collect_amount(conversation, message)
        elif conversation.state == ConversationState.AWAITING_CONFIRMATION:
            reply = self._confirm(conversation, words)
        else:
            reply = self._idle(conversation, message, words)

        return ChatReply(reply, conversation.state)

    def _idle(self, conversation: TransferConversation, message: str, words: set) -> str:
        if words & set(TRANSFER_WORDS):
            return self._start_transfer(conversation, message)
        if "balance" in words:
            user = self.queries.get_user(conversation.user_id)
            if user:
                return f"Your current balance is {format_amount(user.balance)}."
            return "You can check your balance at the top of the dashboard."
        if words & {"transaction", "transactions", "history"}:
            return RESPONSES["transaction"]
        if "fraud" in words:
            return RESPONSES["fraud"]
        return RESPONSES["help"]

    def _start_transfer(self, conversation: TransferConversation, message: str) -> str:
        match = UPI_IN_TEXT.search(message)
        if not match:
            return "Who would you like to pay? Please include their UPI ID, e.g. 'send to friend@upi'."

        account = self.queries.find_account_by_upi(match.group(0))
        if not account:
            return f"I couldn't find an account for {match.group(0)}. Please check the UPI ID."

        conversation.receiver_upi_id = account.upi_id
        conversation.receiver_name = account.holder_name
        conversation.state = ConversationState.AWAITING_AMOUNT

        remainder = message[:match.start()] + message[match.end():]
        if AMOUNT_IN_TEXT.search(remainder.replace(",", "")):
            return self._collect_amount(conversation, remainder)

        return f"How much would you like to send to {account.holder_name} ({account.upi_id})?"

    def _collect_amount(self, conversation: TransferConversation, message: str) -> str:
        match = AMOUNT_IN_TEXT.search(message.replace(",", ""))
        try:
            if not match:
                raise InvalidAmountError()
            amount = parse_amount(match.group(0))
        except InvalidAmountError:
            return "Please enter a valid amount, for example 250.00."

        conversation.amount = amount
        conversation.state = ConversationState.AWAITING_CONFIRMATION
        return (f"Send {format_amount(amount)} to {conversation.receiver_name} "
                f"({conversation.receiver_upi_id})? Reply yes to confirm or no to cancel.")

    def _confirm(self, conversation: TransferConversation, words: set) -> str:
        if words & DECLINE_WORDS:
            conversation.reset()
            return "Transfer cancelled."
        if not words & CONFIRM_WORDS:
            return "Please reply yes to confirm or no to cancel."

        amount, upi_id = conversation.amount, conversation.receiver_upi_id
        conversation.reset()
        try:
            receipt = self.orchestrator.transfer_money(conversation.user_id, amount, upi_id)
        except BankingError as e:
            return f"Transfer failed: {e.message}"

        return (f"Done! Sent {format_amount(receipt.amount)} to {receipt.receiver_name}. "
                f"Your new balance is {format_amount(receipt.sender_balance)}.")
