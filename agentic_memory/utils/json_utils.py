"""
JSON utilities for cleaning LLM responses.
"""


def clean_json_response(response: str) -> str:
    """Clean LLM response by removing code block markers.

    Args:
        response: Raw LLM response

    Returns:
        Cleaned JSON string
    """
    response = response.strip()

    # Remove ```json and ``` markers
    if response.startswith('```json'):
        response = response[7:]
    elif response.startswith('```'):
        response = response[3:]

    if response.endswith('```'):
        response = response[:-3]

    return response.strip()


def extract_json_object(response: str) -> str:
    """Slice the outermost JSON object out of an LLM response.

    Models sometimes wrap the object in prose; everything before the first
    ``{`` and after the last ``}`` is dropped. Responses without braces are
    returned cleaned but otherwise untouched.
    """
    response = clean_json_response(response)
    start = response.find('{')
    end = response.rfind('}')
    if start != -1 and end > start:
        return response[start:end + 1]
    return response
