"""Prompt builders for proof photo quality scoring."""

TAG_GUIDANCE = {
    "Newspaper": "The photo should show the day's newspaper held in front of the installed media so the date is legible.",
    "Traffic": "The photo should show the installed media from the road with passing traffic, framed the way a commuter sees it.",
    "Geo-Tagged": "The photo should clearly show the installed media and its surroundings so the location can be verified.",
    "Other": "The photo should clearly show the installed media.",
}


def build_system_prompt() -> str:
    """Return the system prompt for the quality scorer."""
    return (
        "You review proof-of-installation photos for outdoor advertising (billboards, hoardings, "
        "bus shelters, unipoles). You are strict about what a client would reject: blur, glare, "
        "night shots without lighting, the creative cut off or obstructed, or the wrong subject."
    )


def build_user_prompt(photo_tag: str) -> str:
    """Return the user prompt for a photo of the given tag."""
    guidance = TAG_GUIDANCE.get(photo_tag, TAG_GUIDANCE["Other"])
    return (
        f"This is a '{photo_tag}' proof photo. {guidance} "
        "Score it from 0 to 100, list the issues you see, and suggest how to retake it if needed."
    )
