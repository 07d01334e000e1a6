"""
ClinExtract - Disease Matcher
=============================

Scores document text against disease templates by whole-word keyword
occurrence and picks the best template above a confidence threshold.
Words of a multi-word keyword may be separated by any whitespace run,
so a keyword wrapped across lines still counts.

Scoring for a template with K keywords and S total occurrences:

    base       = S / K * 100
    bonus      = min(S * 5, 30)
    confidence = min(base + bonus, 100)

Templates are visited in identifier order; a candidate replaces the current
best only when its confidence is strictly greater, so on ties the earlier
template wins and a confidence equal to the threshold never matches.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from clinextract.core.logging_config import get_logger
from clinextract.shared.models import DiseaseTemplate, KeywordMatch

logger = get_logger(__name__)

DEFAULT_MATCH_THRESHOLD = 25.0
BONUS_PER_OCCURRENCE = 5.0
MAX_BONUS = 30.0


@dataclass
class TemplateScore:
    """Scoring evidence for one template."""
    template: DiseaseTemplate
    score: int
    confidence: float
    keyword_matches: List[KeywordMatch] = field(default_factory=list)


@dataclass
class DiseaseMatch:
    """Winning template with its confidence and keyword evidence."""
    template: DiseaseTemplate
    confidence: float
    keyword_matches: List[KeywordMatch] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "template_id": self.template.id,
            "disease": self.template.name,
            "confidence": round(self.confidence, 2),
            "keyword_matches": [m.to_dict() for m in self.keyword_matches],
        }


def compute_confidence(score: int, total_keywords: int) -> float:
    """Confidence in [0, 100]; non-decreasing in `score`."""
    if total_keywords <= 0 or score <= 0:
        return 0.0
    base = (score / total_keywords) * 100
    bonus = min(score * BONUS_PER_OCCURRENCE, MAX_BONUS)
    return min(base + bonus, 100.0)


class DiseaseMatcher:
    """
    Keyword-based disease template matcher.

    Usage:
        matcher = DiseaseMatcher(threshold=25)
        match = matcher.match(normalized_text, templates)
        if match:
            print(match.template.name, match.confidence)
    """

    def __init__(self, threshold: float = DEFAULT_MATCH_THRESHOLD):
        self.threshold = threshold
        self._pattern_cache: Dict[str, re.Pattern] = {}

    def _keyword_pattern(self, keyword: str) -> re.Pattern:
        key = keyword.lower()
        pattern = self._pattern_cache.get(key)
        if pattern is None:
            words = r"\s+".join(re.escape(word) for word in key.split())
            pattern = re.compile(rf"\b{words}\b", re.IGNORECASE)
            self._pattern_cache[key] = pattern
        return pattern

    def score_template(self, text: str, template: DiseaseTemplate) -> TemplateScore:
        """Count whole-word, case-insensitive keyword occurrences."""
        score = 0
        keyword_matches: List[KeywordMatch] = []

        for keyword in template.keywords:
            count = len(self._keyword_pattern(keyword).findall(text))
            if count:
                score += count
                keyword_matches.append(KeywordMatch(keyword=keyword, count=count))

        return TemplateScore(
            template=template,
            score=score,
            confidence=compute_confidence(score, len(template.keywords)),
            keyword_matches=keyword_matches,
        )

    def score_all(
        self,
        text: str,
        templates: Iterable[DiseaseTemplate]
    ) -> List[TemplateScore]:
        """Score every template, in stable identifier order."""
        text_lower = text.lower()
        return [
            self.score_template(text_lower, template)
            for template in sorted(templates, key=lambda t: t.id)
        ]

    def match(
        self,
        text: str,
        templates: Iterable[DiseaseTemplate]
    ) -> Optional[DiseaseMatch]:
        """
        Return the best template whose confidence strictly exceeds the threshold.

        Args:
            text: Normalized document text
            templates: Candidate templates

        Returns:
            DiseaseMatch, or None when no template qualifies
        """
        best: Optional[TemplateScore] = None
        best_confidence = 0.0

        for scored in self.score_all(text, templates):
            logger.debug(
                "template_scored",
                template=scored.template.name,
                score=scored.score,
                total_keywords=len(scored.template.keywords),
                confidence=round(scored.confidence, 1),
            )
            if scored.confidence > self.threshold and scored.confidence > best_confidence:
                best = scored
                best_confidence = scored.confidence

        if best is None:
            return None

        return DiseaseMatch(
            template=best.template,
            confidence=best.confidence,
            keyword_matches=best.keyword_matches,
        )
