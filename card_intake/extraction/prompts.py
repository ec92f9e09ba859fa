# Prompt templates for card scanning

SYSTEM_PROMPT = (
    "You are an expert at reading patient information from identification "
    "and health insurance cards."
)

CARD_EXTRACTION_PROMPT = '''
Extract ONLY the information that is EXPLICITLY visible on this card image. This is for a healthcare intake form where accuracy is critical.

CRITICAL INSTRUCTIONS:
- DO NOT make up, guess or infer any value.
- If a field is not clearly visible, leave it as an empty string "".
- DO NOT use placeholders or sample data.
- Copy values exactly as printed (dates, ID numbers, phone numbers).

Return a JSON object with these fields:
- first_name
- last_name
- date_of_birth
- gender
- phone
- email
- address: {street, city, state, zip_code}
- insurance_id
- insurance_provider

Return ONLY the JSON object. Do not include markdown fences or explanatory text.'''


def connectivity_check_prompt() -> str:
    """Return a tiny text-only prompt for provider connectivity checks."""
    return (
        "Reply with the JSON object "
        '{"first_name": "", "last_name": ""} and nothing else.'
    )
