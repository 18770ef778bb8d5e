"""Custom styling for questionary prompts.

Used by the interactive kube context selection.
"""

from questionary import Style

PROMPT_STYLE = Style(
    [
        ("qmark", "fg:#af87ff bold"),  # Purple question mark
        ("question", "bold"),
        ("answer", "fg:#ff87d7 bold"),  # Pink submitted answer
        ("pointer", "fg:#ff87d7 bold"),
        ("highlighted", "fg:#1c1c1c bg:#ff87d7 bold"),  # Dark text on pink background
        ("instruction", "fg:#6c6c6c italic"),
        ("text", ""),
    ]
)

# Icon prefixes for prompts
POINTER = "❯ "
QMARK = "? "
