from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExpenseArgs:
    amount: float
    usernames: list[str] = field(default_factory=list)  # lower-case, without "@"
    note: str = ""


def parse_amount(raw: str) -> float:
    try:
        amount = float(raw.replace(",", "."))
    except ValueError:
        raise ValueError(f"Not a number: {raw!r}.") from None
    if not amount > 0:
        raise ValueError("Amount must be a positive number.")
    return amount


def parse_expense_args(text: str) -> ExpenseArgs:
    """
    Parse the arguments of ``/expense <amount> [@user ...] [note]``.

    Mentions may appear anywhere after the amount; every other word is part
    of the note.
    """
    parts = (text or "").split()
    if not parts:
        raise ValueError("Usage: /expense <amount> [@user ...] [note]")
    amount = parse_amount(parts[0])

    usernames: list[str] = []
    note_words: list[str] = []
    for word in parts[1:]:
        if word.startswith("@") and len(word) > 1:
            name = word[1:].lower()
            if name not in usernames:
                usernames.append(name)
        else:
            note_words.append(word)
    return ExpenseArgs(amount=amount, usernames=usernames, note=" ".join(note_words))
