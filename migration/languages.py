"""
Compare the languages documents use with the destination's configured ones.

The result is advisory: migration is never blocked on it. Documents in a
language the destination lacks are rejected by the Migration API with a 400.
"""

from typing import Any, Dict, Iterable, List

from .models import LanguageReport

REMEDIATION_STEPS = [
    "Steps to add languages:",
    "1. Go to your Prismic dashboard",
    "2. Navigate to Settings > Translations & Locales",
    "3. Add the missing languages listed above",
    "4. Save the changes",
    "5. Run the migration again",
]


def detect_document_languages(documents: Iterable[Dict[str, Any]]) -> List[str]:
    """Language codes used across documents, in first-seen order."""
    languages: List[str] = []

    def add(code):
        if code and isinstance(code, str) and code not in languages:
            languages.append(code)

    for document in documents or []:
        if not isinstance(document, dict):
            continue
        add(document.get("lang"))
        add(document.get("language"))
        data = document.get("data")
        if isinstance(data, dict):
            add(data.get("lang"))

    return languages


def reconcile(
    source_languages: List[Dict[str, Any]],
    destination_languages: List[Dict[str, Any]],
    documents: Iterable[Dict[str, Any]],
) -> LanguageReport:
    document_languages = detect_document_languages(documents)
    destination_ids = {lang.get("id") for lang in destination_languages or [] if isinstance(lang, dict)}
    missing = [code for code in document_languages if code not in destination_ids]

    source_names = {
        lang.get("id"): lang.get("name")
        for lang in source_languages or []
        if isinstance(lang, dict)
    }
    language_instructions = [
        {"id": code, "name": source_names.get(code) or code, "needsToBeAdded": True}
        for code in missing
    ]

    if missing:
        instructions = [
            "To fix language errors, you need to add the following languages to your destination repository:",
            *[f"- {code}" for code in missing],
            "",
            *REMEDIATION_STEPS,
        ]
    else:
        instructions = [
            "All required languages are already configured in the destination repository!"
        ]

    return LanguageReport(
        source_languages=list(source_languages or []),
        destination_languages=list(destination_languages or []),
        document_languages=document_languages,
        missing_languages=missing,
        language_instructions=language_instructions,
        instructions=instructions,
    )
