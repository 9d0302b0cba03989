AGING_PROMPT = """\
Instructions:
1. Analyze the attached image of the person.
2. Generate a new photorealistic image of this SAME person but aged to approximately {age} years old.
3. Place them in the following scenario: "{scenario}".
4. Ensure the face maintains recognizable features of the original person but looks distinguished, successful, and mature.
5. The person should look "premium", healthy, and attractive. Do not make them look elderly or frail. Use cinematic lighting.
6. Do not generate a cartoon or caricature.
"""

REFUSAL_FALLBACK = (
    "The AI could not generate an image for this prompt. "
    "Please try a different description."
)


def build_aging_prompt(scenario, target_age=50):
    """Embed the user's scenario verbatim in the aging instructions."""
    return AGING_PROMPT.format(age=target_age, scenario=scenario)
