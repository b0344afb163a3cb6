"""Prompts for the three model operations: extraction, verification, quality."""

import json

from models import DocumentType, FieldMap

GENERIC_GUIDANCE = (
    "It could be any type of document like a form, ID card, handwritten note, or certificate."
)

# Which fields the model should prioritise per document type
DOCUMENT_GUIDANCE: dict[DocumentType, str] = {
    DocumentType.GENERIC: GENERIC_GUIDANCE,
    DocumentType.ID_CARD: (
        "This is an ID card. Prioritize extracting fields like 'First Name', 'Last Name', "
        "'Date of Birth', 'ID Number', 'Address', 'Gender', 'Issue Date', and 'Expiration Date'."
    ),
    DocumentType.INVOICE: (
        "This is an invoice. Prioritize extracting fields like 'Invoice Number', 'Issue Date', "
        "'Due Date', 'Billed To', 'From', 'Subtotal', 'Tax', 'Total Amount', and any line items "
        "with description and price."
    ),
    DocumentType.RECEIPT: (
        "This is a receipt. Prioritize extracting fields like 'Merchant Name', 'Date', 'Time', "
        "'Total Amount', 'Tax', 'Payment Method', and a list of purchased items."
    ),
}

_EXTRACTION_TEMPLATE = """You are an expert Optical Character Recognition (OCR) system.
Analyze the provided image of a document.
CONTEXT: {guidance}

Extract all identifiable fields and their corresponding values based on the provided context.
Return the result as a single, clean JSON object.
The keys should be descriptive, human-readable labels for the fields (e.g., 'First Name', 'Date of Birth', 'Address').
The values should be the text extracted for those fields.
Do not include any explanatory text, markdown syntax like ```json, or backticks in your response.
Only return the raw JSON object. If no data can be extracted, return an empty JSON object {{}}."""

_VERIFICATION_TEMPLATE = """You are an expert document verifier. I will provide you with an image of a document and a JSON object of data that was supposedly extracted from it.
Your task is to carefully compare each field from the JSON object with the information present in the image.

For each field, determine if the provided value matches the image.
Provide your verification results in a single JSON object.
The keys of this JSON object must be the exact same keys as in the input JSON.
For each key, the value should be an object with two properties:
1. "match": a boolean value (true if the value matches the image, false otherwise).
2. "reason": a brief, one-sentence string explaining why there is a mismatch. If it is a match, this field should be omitted or be an empty string.

Here is the data to verify:
{data}"""

QUALITY_PROMPT = """You are an expert image quality analyst specializing in Optical Character Recognition (OCR).
Your task is to analyze the provided image of a document and determine if its quality is sufficient for accurate OCR.
Consider factors like: blurriness, glare, shadows, contrast, lighting, resolution, and if the document is oriented correctly (not upside down or sideways).

Based on your analysis, provide a structured JSON response with the following fields:
1. "isGoodQuality": A boolean value. Set to 'true' if the image is good enough for reliable OCR, 'false' otherwise. Generally, a score of 70 or above is considered good quality.
2. "score": An integer score from 0 to 100 representing the overall quality of the image for OCR. 0 is completely unreadable, 100 is perfect.
3. "feedback": An array of short, actionable strings providing feedback to the user on how to improve the image quality. For example, "Image appears blurry, try to hold the camera steady." or "Increase contrast for better text readability." If the quality is perfect, provide a message like 'Excellent image quality.'"""

# Constrains the quality response to exactly these three keys
QUALITY_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "isGoodQuality": {"type": "BOOLEAN"},
        "score": {"type": "INTEGER"},
        "feedback": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["isGoodQuality", "score", "feedback"],
}


def extraction_prompt(document_type: DocumentType) -> str:
    guidance = DOCUMENT_GUIDANCE.get(document_type, GENERIC_GUIDANCE)
    return _EXTRACTION_TEMPLATE.format(guidance=guidance)


def verification_prompt(fields: FieldMap) -> str:
    return _VERIFICATION_TEMPLATE.format(data=json.dumps(fields, indent=2, ensure_ascii=False))
