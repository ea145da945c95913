"""Shared prompt fragments for the writing stages."""

import re

from autoblog.schemas.pipeline import WebsiteContext

WRITING_STYLE_GUIDANCE = {
    "informative": "Clear, factual, and educational. Use data, examples, and step-by-step explanations.",
    "conversational": "Friendly and approachable, like talking to a knowledgeable colleague. Use contractions and direct address.",
    "technical": "Precise and detailed, written for practitioners. Use correct terminology and avoid over-simplifying.",
    "storytelling": "Narrative-driven. Open with a scenario and use anecdotes and case studies to illustrate points.",
    "persuasive": "Benefit-focused and compelling. Lead with outcomes and move the reader toward action.",
    "humorous": "Light-hearted and witty but always substantive. Never joke at the expense of accuracy.",
}

BANNED_PHRASES = (
    '"delve", "dive deep", "game-changer", "leverage", "utilize", "tapestry", "landscape" (metaphorical), '
    '"realm", "robust", "cutting-edge", "embark on a journey", "navigating the complexities", "unlock the power"'
)

_COMPARISON_KEYWORD = re.compile(
    r"\b(best|vs\.?|compare|comparison|top \d+|alternatives?|review|which|ranking|ranked|versus)\b",
    re.IGNORECASE,
)


def is_comparison_keyword(keyword: str) -> bool:
    """True for listicle/comparison keywords that need a comparison table."""
    return bool(_COMPARISON_KEYWORD.search(keyword))


def build_system_prompt(ctx: WebsiteContext) -> str:
    """System prompt describing the brand, voice and writing rules."""
    style = WRITING_STYLE_GUIDANCE.get(ctx.writing_style or "")

    lines = [
        f"You are a professional blog writer for {ctx.brand_name} ({ctx.brand_url}).",
        f"{ctx.brand_name} is a {ctx.description}." if ctx.description else "",
        f"Your target audience is: {ctx.target_audience}",
        f"Writing tone: {ctx.tone}",
        f"Writing style: {ctx.writing_style}. {style}" if style else "",
        f"Niche: {ctx.niche}",
        f"Geographic focus: {ctx.target_location}. Use locally relevant data, examples and pricing."
        if ctx.target_location else "",
        f"{ctx.brand_name}'s unique value: {ctx.unique_value_prop}" if ctx.unique_value_prop else "",
        f"Key products/features to reference naturally when relevant: {', '.join(ctx.key_products)}"
        if ctx.key_products else "",
        f"Main competitors: {', '.join(ctx.competitors)}. Position {ctx.brand_name} as the better choice "
        "without attacking them directly." if ctx.competitors else "",
        "\nRULES:",
        f"- Write in a {ctx.tone} style",
        f"- Naturally mention {ctx.brand_name} where relevant (not forced)",
        f'- Include a call-to-action: "{ctx.cta_text}" linking to {ctx.cta_url}' if ctx.cta_text and ctx.cta_url else "",
        f"- Never mention: {', '.join(ctx.avoid_topics)}" if ctx.avoid_topics else "",
        "- Format: Markdown with proper H2/H3 hierarchy",
        "- Write for humans first, search engines second",
        "- Use active voice, short paragraphs, and clear language",
        "- Write from the perspective of a practitioner with years of hands-on experience",
        "- Share specific observations and practical tips, not generic advice",
        f"- Never use these phrases: {BANNED_PHRASES}",
        "- Never use em-dashes. Use commas or periods instead.",
    ]
    return "\n".join(line for line in lines if line)
