"""Prompt builders for feed and post enrichment (responses in pt-BR)."""

from typing import Any, Dict, Iterable


def _post_line(post: Dict[str, Any]) -> str:
    username = str(post.get("username") or "Unknown")
    platform = str(post.get("platform") or "")
    description = str(post.get("description") or "")
    return f"{username} ({platform}): {description}"


def build_feed_summary_prompt(posts: Iterable[Dict[str, Any]]) -> str:
    posts_text = "\n---\n".join(_post_line(post) for post in posts)
    return (
        "Analyze the following posts from a social media feed and provide a short summary "
        "(2-3 sentences) of the main topics and sentiments. Respond in Portuguese (Brazil):\n\n"
        f"{posts_text}"
    )


def build_post_summary_prompt(text: str) -> str:
    return (
        "Summarize the following post in a single short and concise sentence. "
        "Respond in Portuguese (Brazil):\n\n"
        f"{text or ''}"
    )


def build_reply_suggestions_prompt(text: str) -> str:
    return (
        "Suggest exactly 3 short and casual replies (in Portuguese - Brazil) for the following post. "
        "Format as a bulleted list:\n\n"
        f"{text or ''}"
    )
