from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from finsensei.services.aggregation import FinancialSnapshot, compute_snapshot, transaction_type_of, get_field
from finsensei.utils import get_logger, format_currency

logger = get_logger(__name__)

RECENT_TRANSACTION_COUNT = 5

SYSTEM_PROMPT = "You are a financial advisor assistant. Keep answers concise and actionable."


class CoachError(Exception):
    """The AI endpoint could not produce a reply"""


class CoachNotConfiguredError(CoachError):
    """No API key is configured for the AI endpoint"""


def _format_accounts(snapshot: FinancialSnapshot) -> str:
    return "\n".join(
        f"- {get_field(acc, 'account_name', 'Account')}: "
        f"{format_currency(get_field(acc, 'balance') or 0, snapshot.currency)}"
        for acc in snapshot.accounts
    )


def _format_transactions(snapshot: FinancialSnapshot) -> str:
    return "\n".join(
        f"- {get_field(t, 'date', '')}: {transaction_type_of(t)} of "
        f"{format_currency(get_field(t, 'amount') or 0, snapshot.currency)} for {get_field(t, 'source', '')}"
        for t in snapshot.transactions[:RECENT_TRANSACTION_COUNT]
    )


def _format_summary(snapshot: FinancialSnapshot) -> str:
    return (
        f"- Total Income: {format_currency(snapshot.total_income, snapshot.currency)}\n"
        f"- Total Expenses: {format_currency(snapshot.total_expenses, snapshot.currency)}\n"
        f"- Net Balance: {format_currency(snapshot.net_balance, snapshot.currency)}"
    )


def build_chat_prompt(messages: List[Dict[str, str]], snapshot: FinancialSnapshot) -> str:
    conversation = "\n".join(
        f"{'User' if msg['role'] == 'user' else 'Assistant'}: {msg['content']}"
        for msg in messages
    )
    return f"""
Here is the user's current financial situation (all amounts in {snapshot.currency}):

Accounts:
{_format_accounts(snapshot)}

Recent Transactions:
{_format_transactions(snapshot)}

Summary:
{_format_summary(snapshot)}

Previous conversation:
{conversation}

Please provide a helpful and concise response to the user's latest message. All monetary values should be in {snapshot.currency}.
"""


def build_advice_prompt(snapshot: FinancialSnapshot) -> str:
    return f"""
Based on the following financial data (all amounts in {snapshot.currency}), provide a brief analysis and recommendations:

Accounts:
{_format_accounts(snapshot)}

Recent Transactions:
{_format_transactions(snapshot)}

Summary:
{_format_summary(snapshot)}

Please provide:
1. A brief analysis of the current financial situation
2. 2-3 specific recommendations for improvement
3. Tips for better financial management
4. Any areas of concern that need attention

Keep the response concise and actionable. All monetary values should be in {snapshot.currency}.
"""


class FinancialCoach:
    """Chat completion client that answers with the user's finances in context"""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        model: str = "gemini-1.5-flash",
        temperature: float = 0.7,
        top_p: float = 0.95,
        max_tokens: int = 1024,
        timeout: float = 30.0,
        client: Any = None
    ):
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self.max_tokens = max_tokens
        self.client = client
        if self.client is None and api_key:
            self.client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=0
            )

    @classmethod
    def from_settings(cls, settings) -> "FinancialCoach":
        return cls(
            api_key=settings.AI_API_KEY,
            base_url=settings.AI_BASE_URL,
            model=settings.AI_MODEL,
            temperature=settings.AI_TEMPERATURE,
            top_p=settings.AI_TOP_P,
            max_tokens=settings.AI_MAX_OUTPUT_TOKENS,
            timeout=settings.AI_TIMEOUT_SECONDS
        )

    async def _complete(self, prompt: str) -> str:
        if self.client is None:
            logger.error("AI API key is not configured. Set AI_API_KEY (or GEMINI_API_KEY) in your .env file.")
            raise CoachNotConfiguredError("AI API key is not configured")

        try:
            logger.info(f"Sending request to {self.model}...")
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt}
                ],
                temperature=self.temperature,
                top_p=self.top_p,
                max_tokens=self.max_tokens
            )
            content = response.choices[0].message.content
            logger.info("Received response from AI endpoint")
        except Exception as e:
            logger.error(f"AI request failed: {e}")
            raise CoachError(f"Failed to get response: {e}") from e

        if not content:
            raise CoachError("Failed to get response: empty reply")
        return content.strip()

    async def send_chat_message(self, messages: List[Dict[str, str]], snapshot: FinancialSnapshot) -> str:
        return await self._complete(build_chat_prompt(messages, snapshot))

    async def fetch_financial_advice(self, snapshot: FinancialSnapshot) -> str:
        return await self._complete(build_advice_prompt(snapshot))

    async def chat(self, message: str, context: Dict[str, Any], history: List[Dict[str, str]]) -> str:
        """Answer a new user message given raw dashboard context and prior turns"""
        snapshot = compute_snapshot(
            context.get("accounts") or [],
            context.get("recentTransactions") or [],
            currency=context.get("currency")
        )
        messages = [*history, {"role": "user", "content": message}]
        return await self.send_chat_message(messages, snapshot)
