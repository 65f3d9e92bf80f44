"""Instruction prompts for alt text generation.

Templates use a ``{LANGUAGE}`` placeholder that is replaced with the full
language name for the configured language code.
"""

LANGUAGE_PLACEHOLDER = "{LANGUAGE}"

LANGUAGES = {
    "sv": "Swedish",
    "no": "Norwegian",
    "dk": "Danish",
    "fi": "Finnish",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "ru": "Russian",
    "ja": "Japanese",
    "zh": "Chinese",
    "ko": "Korean",
    "ar": "Arabic",
}

DEFAULT_INSTRUCTION = """You are an expert in accessibility and SEO optimization, tasked with generating alt text for images. Analyze the image provided and generate a concise, descriptive alt text that follows these rules:

- Keep it short (1-2 sentences) and descriptive, focusing on the essential elements in the image. Describe why the image was likely chosen rather than every small detail.
- Do not include phrases such as "image of" or "picture of".
- Do not add prefixes like "alt:" or "alt text:".
- Write the text in {LANGUAGE}, following the cultural and linguistic conventions of {LANGUAGE}.
- For ambiguous images, assume communicative intent and describe them neutrally (e.g., "A coffee cup on a wooden table").
- For abstract images with no clear focal point, describe general characteristics (e.g., "Abstract patterns with swirling blue and green lines").
- Include keywords relevant to the image content, aligned with its primary subject.
- If {LANGUAGE} is unsupported, write in English.
- Use plain, easy-to-understand language.

Output:
A single alt text description for the image in {LANGUAGE}."""

IMPROVEMENT_INSTRUCTIONS = {
    "more_descriptive": "Make the alt text more descriptive. Include more relevant visual details while staying within two sentences.",
    "more_concise": "Make the alt text more concise. Keep only the most essential information.",
    "more_accessible": "Make the alt text more useful for screen reader users. Describe what matters for understanding the content, in plain language.",
    "better_seo": "Improve the alt text for search engines by including relevant keywords naturally, without keyword stuffing.",
    "technical_accuracy": "Make the alt text more technically accurate. Use correct terminology for objects, materials, techniques and settings shown.",
    "brand_voice": "Rewrite the alt text in a consistent, professional brand voice while keeping it factual.",
}


def language_name(code: str) -> str:
    """Return the English name for a language code, or the code itself if unknown."""
    return LANGUAGES.get(code.lower(), code) if code else LANGUAGES["en"]


def build_instruction(template: str | None, language_code: str) -> str:
    """
    Build the instruction prompt for one request.

    Args:
        template: Custom template, or None/blank to use the built-in default
        language_code: Target language code, e.g. "sv"

    Returns:
        The template with every {LANGUAGE} placeholder substituted
    """
    base = template if template and template.strip() else DEFAULT_INSTRUCTION
    return base.replace(LANGUAGE_PLACEHOLDER, language_name(language_code))


def build_feedback_instruction(
    template: str | None,
    language_code: str,
    improvement_type: str,
    custom_feedback: str = "",
    original_text: str = "",
) -> str:
    """
    Build an instruction asking the model to improve an earlier alt text.

    Args:
        template: Custom base template, or None for the default
        language_code: Target language code
        improvement_type: One of IMPROVEMENT_INSTRUCTIONS, or "custom"
        custom_feedback: Free-form feedback from the user
        original_text: The alt text being improved

    Returns:
        The combined instruction

    Raises:
        ValueError: If the improvement type is unknown and no custom feedback is given
    """
    parts = [build_instruction(template, language_code)]

    if original_text:
        parts.append(f'The previous alt text was: "{original_text}"')

    guidance = IMPROVEMENT_INSTRUCTIONS.get(improvement_type)
    if guidance:
        parts.append(guidance)
    elif not custom_feedback.strip():
        raise ValueError(f"Unknown improvement type: {improvement_type}")

    if custom_feedback.strip():
        parts.append(f"User feedback to address: {custom_feedback.strip()}")

    return "\n\n".join(parts)
