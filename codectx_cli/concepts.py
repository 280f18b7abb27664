"""Map domain concepts to files by matching keywords against paths."""

from __future__ import annotations

import logging
import re
from typing import List, Pattern, Sequence, Tuple

from . import config
from .models import ConceptMap, SourceFile

logger = logging.getLogger(__name__)

CONCEPTS: Tuple[Tuple[str, str], ...] = (
    ("authentication", "auth|login|logout|signin|signout|session|jwt|oauth"),
    ("authorization", "permission|role|access|policy|guard"),
    ("database", "prisma|sequelize|typeorm|mongoose|knex|sql|query|migration|db"),
    ("api", "route|endpoint|controller|handler"),
    ("error_handling", "error|exception|fault"),
    ("validation", "valid|schema|zod|yup|joi"),
    ("testing", "test|spec|mock|stub|fixture"),
    ("logging", "logger|winston|pino"),
    ("caching", "cache|redis|memcache"),
    ("email", "email|mail|smtp|sendgrid"),
    ("payments", "payment|stripe|paypal|billing|invoice"),
    ("uploads", "upload|multer|s3|storage"),
    ("websockets", "socket|realtime|pubsub"),
    ("scheduling", "cron|schedule|job|queue|worker"),
)


def _compile(keywords: str) -> Pattern[str]:
    # A directory segment equal to a keyword, or a file name starting with one.
    return re.compile(rf"/({keywords})[^/]*$|/({keywords})/", re.IGNORECASE)


class ConceptExtractor:
    """Path-only concept classifier. Contents are never read."""

    extensions = config.CONCEPT_EXTENSIONS

    def __init__(
        self,
        limit: int = config.DEFAULT_CONCEPT_LIMIT,
        concepts: Sequence[Tuple[str, str]] = CONCEPTS,
    ) -> None:
        self.limit = limit
        self._patterns: List[Tuple[str, Pattern[str]]] = [
            (name, _compile(keywords)) for name, keywords in concepts
        ]

    def classify(self, source: SourceFile) -> ConceptMap:
        """Concepts whose keywords match the path of a single file."""
        partial = ConceptMap(limit=self.limit)
        rooted = "/" + source.path
        for name, pattern in self._patterns:
            if pattern.search(rooted):
                partial.add(name, source.path)
        return partial

    def extract(self, files: Sequence[SourceFile]) -> ConceptMap:
        # Concepts keep table order; files keep enumeration order.
        result = ConceptMap(limit=self.limit, entries={name: [] for name, _ in self._patterns})
        for source in files:
            result.merge(self.classify(source))
        logger.debug("Concepts matched: %d", len(result))
        return result
