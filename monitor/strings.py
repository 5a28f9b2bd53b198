"""
monitor/strings.py
User-facing strings for the free command.
"""

STATUS_TITLE = "**__CHANNEL STATUS__**"

NEW_QUESTION = (
    "Thank you for asking a question. This channel is now marked as **busy**.\n"
    "Once your question has been answered, please use `/free` so others can ask here."
)
MARK_AS_FREE = "✅ This channel is now **free** for a new question to be asked."

GENERIC_ERROR = "❌ Something went wrong, please try again later."
NOT_READY_ERROR = "⏳ The free command is still starting up, please try again in a minute."
NOT_CONFIGURED_ERROR = (
    "❌ This server is not configured to use `/free`. "
    "Ask a moderator to add it to the bot's configuration."
)
NOT_MONITORED_ERROR = (
    "❌ This channel is not monitored for free/busy status. "
    "If you believe it should be, please discuss it with a moderator."
)
ALREADY_FREE_ERROR = "ℹ️ This channel is already free, no changes made."

STATUS_FREE_HEADING = "**Free**"
STATUS_BUSY_HEADING = "**Busy**"
STATUS_EMPTY = "_none_"
FREE_EMOJI = "🟢"
BUSY_EMOJI = "🔴"

OP_LEFT_TITLE = "OP left"
OP_LEFT_DESCRIPTION = "Closing thread..."

GIST_REPLY = (
    "I uploaded your attachments as **gist**. That way, they are easier to read "
    "for everyone, especially mobile users 👍"
)
GIST_BUTTON_LABEL = "gist"
