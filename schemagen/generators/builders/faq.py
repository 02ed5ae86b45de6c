"""FAQPage schema builder."""
from typing import Iterable, Optional

from schemagen.models.page import FAQItem, GenerationOptions, OrgInfo, PageData
from schemagen.models.schema import Answer, FAQPageEntity, Question
from schemagen.generators.builders.common import clean_text

# Google shows at most 10 questions per FAQ rich result
MAX_FAQ_ITEMS = 10


def faq_from_pairs(pairs: Iterable[FAQItem]) -> Optional[FAQPageEntity]:
    """
    Keep pairs whose trimmed question AND answer are non-blank, cap at
    MAX_FAQ_ITEMS. None (omit the entity) when nothing survives.
    """
    questions = []
    for pair in pairs:
        question = clean_text(pair.question)
        answer = clean_text(pair.answer)
        if not question or not answer:
            continue
        questions.append(Question(name=question, accepted_answer=Answer(text=answer)))
        if len(questions) == MAX_FAQ_ITEMS:
            break

    if not questions:
        return None
    return FAQPageEntity(main_entity=questions)


def build_faq(page: PageData, org: OrgInfo, options: GenerationOptions) -> Optional[FAQPageEntity]:
    return faq_from_pairs(page.faqs)
