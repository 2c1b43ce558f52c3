"""Instruction text sent to the LLM for structuring bank statement transactions"""

from dataclasses import dataclass

from logbook_ledger.domain.cycle import validate_cycle_day

# Literal the model writes for created_at/updated_at; swapped for a real timestamp after parsing
TIMESTAMP_PLACEHOLDER = "current ISO timestamp"

SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts and formats bank statement transactions "
    "into structured data. Focus on extracting meaningful names from transaction "
    "descriptions and correctly identifying DR/CR transactions. Return only the JSON array "
    "without any markdown formatting or additional text. Ensure the response is a complete "
    "JSON array with proper closing brackets."
)

USER_PROMPT_TEMPLATE = """You are a JSON-generating financial data parser.

Given the following raw bank transaction text, convert it into a JSON array of objects, each with exactly these fields:

{{
  "transaction_date": string,   // "YYYY-MM-DD"
  "transaction_name": string,
  "amount": number,
  "transaction_type": number,   // 0 or 1
  "code": string,
  "currency_id": number,
  "user_id": string,
  "created_at": string,
  "updated_at": string
}}

Instructions:
- Extract transactions from the provided text, but only include transactions from the {cutoff} of the month onwards.
- Use the transaction date as 'transaction_date' in "YYYY-MM-DD" format.
- For 'transaction_name', extract the meaningful name from the description:
  * For UPI transactions, look for recognizable business names (e.g., "Zomato", "BookMyShow", "Amazon")
  * For NEFT/IMPS, use the recipient's name
  * For other transactions, use the most meaningful part of the description
  * If no clear name is found, use the first meaningful part of the description
- Use the full original description as 'code'.
- For 'transaction_type':
  * Use 0 for DR (Debit) transactions
  * Use 1 for CR (Credit) transactions
- Use the absolute transaction value as 'amount', without currency symbols or thousands separators.
- Set currency_id to {currency_id}.
- Set user_id to "{user_id}".
- Use "{placeholder}" as a placeholder for 'created_at' and 'updated_at' (it will be replaced with actual timestamps).
- Return a valid JSON array without any markdown formatting or additional text.
- Ensure the response is a complete JSON array with proper closing brackets.
- Only include transactions that occurred on or after the {cutoff} of the month.

Examples of name extraction:
- "UPI/zomatoonlineord/ZomatoOnline Ord/AIRTEL PAYMENTS/..." -> "Zomato"
- "UPI/shreyab408-1@ok/UPI/HDFC BANK LTD/..." -> "Shreya"
- "NEFT-CITIN52025050962150160-TATA CONSULTANCY SERVICES LIMITED-..." -> "TATA CONSULTANCY SERVICES"
- "UPI/bookmyshow@yesp/BOOKMY SHOW/YesBank_Yespay/..." -> "Book My Show"

Examples of transaction types:
- "DR" or "Debit" in description -> transaction_type: 0
- "CR" or "Credit" in description -> transaction_type: 1

Here is the raw transaction text:
{raw_text}"""


@dataclass(frozen=True)
class StatementPrompt:
    """System and user turns for one statement-structuring request"""

    system: str
    user: str


def ordinal(day: int) -> str:
    """1 -> '1st', 22 -> '22nd', 13 -> '13th'"""
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def build_statement_prompt(
    raw_text: str,
    currency_id: int,
    user_id: str,
    cycle_start_day: int,
) -> StatementPrompt:
    """
    Render the instructions that turn raw statement text into transaction JSON.

    currency_id and user_id are stamped literally into every record by the
    model; timestamps are requested as a placeholder and filled in by the
    sanitizer.

    Raises:
        InvalidCycleDay: When cycle_start_day is not a valid start day
    """
    cutoff_day = validate_cycle_day(cycle_start_day)
    user = USER_PROMPT_TEMPLATE.format(
        cutoff=ordinal(cutoff_day),
        currency_id=currency_id,
        user_id=user_id,
        placeholder=TIMESTAMP_PLACEHOLDER,
        raw_text=raw_text,
    )
    return StatementPrompt(system=SYSTEM_PROMPT, user=user)
