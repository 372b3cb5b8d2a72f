"""Build provider prompts from an extracted conversation."""

from __future__ import annotations

from .config import MAX_TOKENS
from .models import Conversation

LENGTH_INSTRUCTIONS = {
    "short": "in 2-3 sentences",
    "medium": "in 1-2 paragraphs",
    "long": "in 3-4 paragraphs with key details",
}

# (max message count, summary length, structure depth), checked in order
DEPTH_THRESHOLDS = [
    (3, "concise", "basic"),
    (8, "balanced", "detailed"),
]
DEEPEST = ("comprehensive", "extensive")

_CONCISENESS = {
    "concise": "Keep it brief but complete",
    "balanced": "Balance detail with brevity",
    "comprehensive": "Provide comprehensive detail while staying organized",
}


def max_tokens_for(length: str | None) -> int:
    return MAX_TOKENS.get(length or "", MAX_TOKENS["medium"])


def format_transcript(conversation: Conversation) -> str:
    """Render turns as alternating Human:/Assistant: paragraphs."""
    return "\n\n".join(
        f"{'Human' if m.role == 'user' else 'Assistant'}: {m.content}"
        for m in conversation.messages
    )


def summary_depth(message_count: int) -> tuple[str, str]:
    """Return (summary length, structure depth) for a conversation size."""
    for limit, length, depth in DEPTH_THRESHOLDS:
        if message_count <= limit:
            return length, depth
    return DEEPEST


def build_summary_prompt(conversation: Conversation, length: str | None = "medium") -> str:
    instruction = LENGTH_INSTRUCTIONS.get(length or "", LENGTH_INSTRUCTIONS["medium"])
    transcript = format_transcript(conversation)

    return (
        f"Please summarize this conversation {instruction}. "
        "Focus on the main topics, key questions asked, and important information shared. "
        "Make it suitable for continuing the conversation in a new chat session.\n"
        "\n"
        "Conversation:\n"
        f"{transcript}\n"
        "\n"
        "Summary:"
    )


def build_smart_summary_prompt(conversation: Conversation, target_format: str = "markdown") -> str:
    """Structured five-section prompt whose depth scales with message count."""
    message_count = conversation.total_messages
    platform = conversation.platform.label
    summary_length, structure_depth = summary_depth(message_count)
    transcript = format_transcript(conversation)

    return f"""You are an expert conversation analyst tasked with creating a high-quality, structured summary of a conversation between a human and an AI assistant ({platform}). This summary will be used to continue the conversation in a new session, so it must capture all essential context, decisions, and progress made.

## ANALYSIS TASK:
Create a {summary_length} summary that extracts the core essence and actionable insights from this conversation.

## CONVERSATION TO ANALYZE:
{transcript}

## REQUIRED STRUCTURE:
Format your response as {target_format} with these sections:

### 🎯 **Core Objective**
- What was the human trying to accomplish?
- What problem were they solving?

### 📋 **Key Topics & Decisions**
- Main subjects discussed
- Important decisions made
- Technical specifications or requirements mentioned

### 🔍 **Current Progress**
- What has been completed or resolved
- What solutions were provided
- Code, steps, or instructions given

### ⚠️ **Open Questions & Next Steps**
- Unresolved issues or pending questions
- Suggested next actions
- Areas that need further discussion

### 🧠 **Context for Continuation**
- Important background information
- User preferences or constraints mentioned
- Relevant details for future interactions

## PROMPT ENGINEERING GUIDELINES:
1. **Be Precise**: Extract only essential, actionable information
2. **Be Contextual**: Focus on information needed to continue the conversation
3. **Be Structured**: Use clear sections and bullet points
4. **Be Concise**: {_CONCISENESS[summary_length]}
5. **Be Actionable**: Include concrete next steps or follow-up items

## CONVERSATION METADATA:
- Messages: {message_count}
- Platform: {platform}
- Structure Depth: {structure_depth}
- Summary Type: Smart AI Analysis

Generate a professional, structured summary that captures the essence of this conversation:"""
