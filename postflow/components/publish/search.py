import re

from postflow.domain.entities import IdentitySnapshot

WORD_PATTERN = re.compile(r"[\w']+")


def title_search_terms(title: str) -> list[str]:
    """Lowercase words of a title, first occurrence order, no duplicates."""
    seen: dict[str, None] = {}
    for word in WORD_PATTERN.findall(title.lower()):
        seen.setdefault(word.strip("'"), None)
    return [w for w in seen if w]


def search_terms(title: str, author: IdentitySnapshot) -> list[str]:
    """Title words plus the author's name words and handle."""
    terms = title_search_terms(title)
    extra = author.name.lower().split() + ([author.username] if author.username else [])
    for term in extra:
        if term not in terms:
            terms.append(term)
    return terms
