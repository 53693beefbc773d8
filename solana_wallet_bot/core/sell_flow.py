"""
Interactive Sell Flow

Walks a user from "show my holdings" to a submitted swap:

    MENU_SHOWN → TOKEN_SELECTED → PERCENTAGE_PROMPTED
        → PERCENTAGE_CONFIRMED → EXECUTING → COMPLETED | FAILED
        → CUSTOM_PROMPTED → AWAITING_CUSTOM_INPUT → EXECUTING → ...

Each interaction gets a fresh SellSession that only lives for that call.
The token mint travels in the button's callback data; the one exception is
the custom amount branch, which parks the mint in the PendingActionStore
until the user types a number.
"""

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol

from ..config import Settings
from ..constants import CANCEL_TOKENS, NATIVE_MINT, SELL_PERCENTAGES
from ..exceptions import BotException, ConfirmationTimeout, InvalidAmount, UserNotFound
from ..utils.amounts import format_ui_amount, parse_ui_amount, percentage_of_native, to_native, to_ui
from . import messages
from .holdings import HoldingsGateway
from .keystore import KeyStore
from .models import NoExpectation, Reply, SwapRequest, SwapResult, TokenHolding, User
from .pending_store import PendingActionStore
from .user_locks import UserLocks

logger = logging.getLogger(__name__)

Notify = Callable[[Reply], Awaitable[None]]


class SellState(Enum):
    """Sell flow states"""
    IDLE = "IDLE"
    MENU_SHOWN = "MENU_SHOWN"
    TOKEN_SELECTED = "TOKEN_SELECTED"
    PERCENTAGE_PROMPTED = "PERCENTAGE_PROMPTED"
    PERCENTAGE_CONFIRMED = "PERCENTAGE_CONFIRMED"
    CUSTOM_PROMPTED = "CUSTOM_PROMPTED"
    AWAITING_CUSTOM_INPUT = "AWAITING_CUSTOM_INPUT"
    EXECUTING = "EXECUTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATES = {SellState.COMPLETED, SellState.FAILED}


@dataclass
class StateTransition:
    """Record of state change"""
    from_state: SellState
    to_state: SellState
    timestamp: float
    reason: str


@dataclass
class SellSession:
    """State of one sell interaction; discarded when the handler returns."""
    user_id: str
    mint: Optional[str] = None
    state: SellState = SellState.IDLE
    transitions: List[StateTransition] = field(default_factory=list)

    def transition_to(self, new_state: SellState, reason: str = ""):
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Sell session already {self.state.value}")
        self.transitions.append(
            StateTransition(
                from_state=self.state,
                to_state=new_state,
                timestamp=time.time(),
                reason=reason,
            )
        )
        old_state = self.state
        self.state = new_state
        mint = f"{self.mint[:8]}..." if self.mint else "-"
        logger.info(
            f"🔄 [{self.user_id}] State: {old_state.value} → {new_state.value} | "
            f"mint={mint} {reason}".rstrip()
        )

    def fail(self, exc: BotException):
        if self.state not in TERMINAL_STATES:
            self.transition_to(SellState.FAILED, type(exc).__name__)


class UserStore(Protocol):
    def find_user(self, telegram_id: str) -> Optional[User]: ...


class Executor(Protocol):
    async def execute(self, request: SwapRequest) -> SwapResult: ...


class SellFlow:
    """
    Sell flow orchestration.

    Every public step returns a Reply and never raises a BotException: typed
    failures are turned into messages at the step boundary. Nothing is
    retried; the user re-issues the command.
    """

    def __init__(
        self,
        users: UserStore,
        keystore: KeyStore,
        holdings: HoldingsGateway,
        executor: Executor,
        pending: PendingActionStore,
        locks: UserLocks,
        settings: Settings,
    ):
        self.users = users
        self.keystore = keystore
        self.holdings = holdings
        self.executor = executor
        self.pending = pending
        self.locks = locks
        self.settings = settings

    # -------------------------------------------------------------------------
    # MenuShown
    # -------------------------------------------------------------------------

    async def show_menu(self, user_id: str, edit: bool = False) -> Reply:
        session = SellSession(user_id=user_id)
        try:
            user = self._require_user(user_id)
            # opening the menu abandons any custom amount prompt
            self.pending.clear_pending(user_id)
            portfolio = await self.holdings.load_portfolio(user.wallet_address)
        except BotException as exc:
            session.fail(exc)
            return messages.build_error(exc, edit=edit)

        if not portfolio:
            session.transition_to(SellState.FAILED, "no holdings")
            return messages.build_notice(
                "📭 No tokens with balance found in your wallet. You only have SOL.", edit=edit
            )

        session.transition_to(SellState.MENU_SHOWN, f"{len(portfolio)} tokens")
        reply = messages.build_sell_menu(portfolio)
        reply.edit = edit
        return reply

    # -------------------------------------------------------------------------
    # TokenSelected → PercentagePrompted
    # -------------------------------------------------------------------------

    async def select_token(self, user_id: str, mint: str) -> Reply:
        session = SellSession(user_id=user_id, mint=mint)
        try:
            user = self._require_user(user_id)
            self.pending.clear_pending(user_id)
            holding = await self.holdings.load_holding(user.wallet_address, mint)
        except BotException as exc:
            session.fail(exc)
            return messages.build_error(exc, edit=True)

        session.transition_to(SellState.TOKEN_SELECTED)
        if holding is None:
            session.transition_to(SellState.FAILED, "zero balance")
            return _no_balance()

        session.transition_to(SellState.PERCENTAGE_PROMPTED)
        return messages.build_percentage_prompt(holding)

    # -------------------------------------------------------------------------
    # PercentageConfirmed → Executing
    # -------------------------------------------------------------------------

    async def execute_percentage(
        self,
        user_id: str,
        mint: str,
        percentage: int,
        notify: Optional[Notify] = None,
    ) -> Reply:
        session = SellSession(user_id=user_id, mint=mint, state=SellState.PERCENTAGE_PROMPTED)
        if percentage not in SELL_PERCENTAGES:
            exc = InvalidAmount(f"Unsupported percentage: {percentage}%")
            session.fail(exc)
            return messages.build_error(exc, edit=True)

        async with self.locks.acquire(user_id) as acquired:
            if not acquired:
                return _already_running()
            try:
                user = self._require_user(user_id)
                # balances may have moved since the prompt was shown
                holding = await self.holdings.load_holding(user.wallet_address, mint, with_price=False)
                session.transition_to(SellState.PERCENTAGE_CONFIRMED, f"{percentage}%")
                if holding is None:
                    session.transition_to(SellState.FAILED, "zero balance")
                    return _no_balance()

                amount_native = percentage_of_native(holding.amount_native, percentage)
                if amount_native <= 0:
                    raise InvalidAmount("Balance too small to sell this percentage.")
                return await self._execute(
                    session, user, holding, amount_native, percentage, edit=True, notify=notify
                )
            except BotException as exc:
                session.fail(exc)
                return self._failure_reply(exc, edit=True)

    # -------------------------------------------------------------------------
    # CustomPrompted → AwaitingCustomInput
    # -------------------------------------------------------------------------

    async def request_custom_amount(self, user_id: str, mint: str) -> Reply:
        session = SellSession(user_id=user_id, mint=mint, state=SellState.PERCENTAGE_PROMPTED)
        try:
            user = self._require_user(user_id)
            holding = await self.holdings.load_holding(user.wallet_address, mint, with_price=False)
        except BotException as exc:
            session.fail(exc)
            return messages.build_error(exc, edit=True)

        if holding is None:
            session.transition_to(SellState.FAILED, "zero balance")
            return _no_balance()

        session.transition_to(SellState.CUSTOM_PROMPTED)
        self.pending.set_pending(user_id, mint)
        session.transition_to(SellState.AWAITING_CUSTOM_INPUT)
        return messages.build_custom_prompt(holding)

    async def handle_text(
        self,
        user_id: str,
        text: str,
        notify: Optional[Notify] = None,
    ) -> Optional[Reply]:
        """
        Resolve a typed amount. Returns None when this user has no open
        custom sell, so the message can be handled elsewhere.
        """
        expectation = self.pending.expectation(user_id)
        if isinstance(expectation, NoExpectation):
            return None

        mint = expectation.mint
        session = SellSession(user_id=user_id, mint=mint, state=SellState.AWAITING_CUSTOM_INPUT)
        cleaned = (text or "").strip()

        if cleaned.lower() in CANCEL_TOKENS:
            self.pending.clear_pending(user_id)
            session.transition_to(SellState.FAILED, "cancelled")
            return messages.build_notice("❌ Custom sell cancelled.")

        try:
            amount = parse_ui_amount(cleaned)
        except InvalidAmount:
            # pending entry stays so the user can simply try again
            return messages.build_notice(
                "❌ Invalid amount. Please enter a positive number.\n\n"
                "Example: 100 or 0.5\n\nUse /cancel to cancel."
            )

        self.pending.clear_pending(user_id)
        async with self.locks.acquire(user_id) as acquired:
            if not acquired:
                return _already_running()
            try:
                return await self._execute_custom(session, amount, notify)
            except BotException as exc:
                session.fail(exc)
                return self._failure_reply(exc, edit=False)

    def cancel(self, user_id: str) -> Reply:
        if self.pending.clear_pending(user_id):
            logger.info(f"[{user_id}] Custom sell cancelled")
            return messages.build_notice("❌ Custom sell cancelled.")
        return messages.build_notice("Nothing to cancel.")

    async def _execute_custom(
        self,
        session: SellSession,
        amount: Decimal,
        notify: Optional[Notify],
    ) -> Reply:
        user = self._require_user(session.user_id)
        holding = await self.holdings.load_holding(user.wallet_address, session.mint, with_price=False)
        if holding is None:
            raise InvalidAmount("Insufficient balance. You have 0 tokens.")

        insufficient = InvalidAmount(
            f"Insufficient balance. You have {format_ui_amount(holding.amount_ui)} tokens."
        )
        try:
            amount_native = to_native(amount, holding.decimals)
        except InvalidAmount:
            # too large to scale at all
            if amount > holding.amount_ui:
                raise insufficient from None
            raise
        if amount_native > holding.amount_native:
            raise insufficient
        if amount_native <= 0:
            raise InvalidAmount(
                f"Amount is below the smallest unit of this token ({holding.decimals} decimals)."
            )
        return await self._execute(session, user, holding, amount_native, None, edit=False, notify=notify)

    # -------------------------------------------------------------------------
    # Executing → Completed | Failed
    # -------------------------------------------------------------------------

    async def _execute(
        self,
        session: SellSession,
        user: User,
        holding: TokenHolding,
        amount_native: int,
        percentage: Optional[int],
        edit: bool,
        notify: Optional[Notify],
    ) -> Reply:
        signer = self.keystore.load_keypair(user.encrypted_private_key)
        amount_ui = to_ui(amount_native, holding.decimals)

        session.transition_to(SellState.EXECUTING, f"{amount_ui} ({amount_native} native)")
        if notify is not None:
            await notify(messages.build_processing(edit=edit))

        result = await self.executor.execute(
            SwapRequest(
                signer=signer,
                input_mint=holding.mint,
                output_mint=NATIVE_MINT,
                amount_ui=amount_ui,
                slippage_bps=self.settings.SELL_SLIPPAGE_BPS,
                input_decimals=holding.decimals,
                user_id=user.telegram_id,
            )
        )
        session.transition_to(SellState.COMPLETED, result.signature[:16])
        return messages.build_sell_success(
            result,
            self.settings.explorer_link(result.signature),
            percentage=percentage,
            edit=edit,
        )

    def _require_user(self, user_id: str) -> User:
        user = self.users.find_user(user_id)
        if user is None:
            raise UserNotFound("No wallet registered", user_id=user_id)
        return user

    def _failure_reply(self, exc: BotException, edit: bool) -> Reply:
        explorer = None
        if isinstance(exc, ConfirmationTimeout) and exc.signature:
            explorer = self.settings.explorer_link(exc.signature)
        logger.warning(f"Sell failed: {exc}")
        return messages.build_error(exc, explorer_url=explorer, edit=edit)


def _no_balance() -> Reply:
    return messages.build_notice("❌ No balance for this token", edit=True, toast="❌ No balance for this token")


def _already_running() -> Reply:
    return messages.build_notice(
        "⏳ A sell is already in progress. Please wait for it to finish.",
        toast="⏳ Sell already in progress",
    )
