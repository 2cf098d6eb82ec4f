"""Payee alias store: merchant pattern -> payee, with usage counters."""

import logging
from datetime import datetime, UTC
from typing import Optional, Sequence

from bankrec.database.base import Database
from bankrec.domain.entities import AliasSource, PayeeAlias as PayeeAliasEntity
from bankrec.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    alias_not_found,
    duplicate_alias_pattern,
    payee_not_found,
)
from bankrec.utils.merchant import extract_merchant_pattern
from bankrec.utils.normalize import normalize_description

logger = logging.getLogger(__name__)


def best_alias_match(aliases: Sequence[PayeeAliasEntity], merchant_pattern: str) -> Optional[PayeeAliasEntity]:
    """Pick the alias for a merchant pattern from an already loaded alias list.

    An exact pattern wins. Otherwise the first alias, in list order, whose
    pattern contains or is contained in ``merchant_pattern``. Callers pass
    aliases ordered by ``times_matched`` descending, then ID.
    """
    if not merchant_pattern:
        return None

    for alias in aliases:
        if alias.normalized_pattern == merchant_pattern:
            return alias

    for alias in aliases:
        pattern = alias.normalized_pattern
        if pattern and (pattern in merchant_pattern or merchant_pattern in pattern):
            return alias
    return None


class PayeeAliasService:
    """Service for looking up and learning payee aliases."""

    def __init__(self, db: Database):
        """Initialize payee alias service.

        Args:
            db: Database instance
        """
        self.db = db

    def list_aliases(self, user_id: int, payee_id: Optional[int] = None) -> list[PayeeAliasEntity]:
        """List a user's aliases, most used first.

        Args:
            user_id: Owner of the aliases
            payee_id: Optional filter on the target payee

        Returns:
            List of alias entities
        """
        return self.db.list_payee_aliases(user_id, payee_id=payee_id)

    def find_best_match(self, user_id: int, merchant_pattern: str) -> Optional[PayeeAliasEntity]:
        """Find the alias that best matches a merchant pattern.

        Exact pattern first; otherwise substring containment in either
        direction, preferring aliases with a higher ``times_matched``.

        Args:
            user_id: Owner of the aliases
            merchant_pattern: Pattern from ``extract_merchant_pattern``

        Returns:
            Matching alias or None
        """
        if not merchant_pattern:
            return None
        exact = self.db.get_payee_alias_by_pattern(user_id, merchant_pattern)
        if exact is not None:
            return exact
        return best_alias_match(self.db.list_payee_aliases(user_id), merchant_pattern)

    def learn_alias(
        self, user_id: int, payee_id: int, bank_description: str, normalized_pattern: str
    ) -> Optional[PayeeAliasEntity]:
        """Record that ``normalized_pattern`` was confirmed as ``payee_id``.

        Creates the alias on first use; afterwards increments its counter and
        reassigns it to ``payee_id``, so re-assigning a merchant to another
        payee takes effect on the next import.

        Returns:
            The alias, or None when the pattern is empty
        """
        if not normalized_pattern:
            return None

        now = datetime.now(UTC)
        existing = self.db.get_payee_alias_by_pattern(user_id, normalized_pattern)
        if existing is not None:
            self.db.record_payee_alias_use(existing.id, payee_id, bank_description, now)
            alias_id = existing.id
        else:
            alias_id = self.db.create_payee_alias(
                user_id=user_id,
                payee_id=payee_id,
                bank_description=bank_description,
                normalized_pattern=normalized_pattern,
                source=AliasSource.IMPORT_LEARN.value,
                times_matched=1,
                last_matched_at=now,
            )
        logger.debug("Alias '%s' -> payee %s learned", normalized_pattern, payee_id)
        return self.db.get_payee_alias(alias_id)

    def create_alias(
        self,
        user_id: int,
        payee_id: int,
        bank_description: str,
        pattern: Optional[str] = None,
    ) -> int:
        """Create a manual alias.

        Args:
            user_id: Owner of the alias
            payee_id: Target payee
            bank_description: Example raw bank description
            pattern: Explicit pattern; derived from ``bank_description`` when omitted

        Returns:
            Alias ID

        Raises:
            NotFoundError: If the payee does not exist or is not the user's
            ValidationError: If no pattern can be derived
            ConflictError: If the user already has an alias for that pattern
        """
        payee = self.db.get_payee(payee_id)
        if payee is None or payee.user_id != user_id:
            raise NotFoundError(payee_not_found(payee_id))

        if pattern is not None:
            normalized = normalize_description(pattern)
        else:
            normalized = extract_merchant_pattern(bank_description)
        if not normalized:
            raise ValidationError("Alias pattern is empty after normalization")
        if self.db.get_payee_alias_by_pattern(user_id, normalized) is not None:
            raise ConflictError(duplicate_alias_pattern(normalized))

        return self.db.create_payee_alias(
            user_id=user_id,
            payee_id=payee_id,
            bank_description=bank_description or normalized,
            normalized_pattern=normalized,
            source=AliasSource.MANUAL.value,
            times_matched=0,
        )

    def delete_alias(self, user_id: int, alias_id: int) -> None:
        """Delete one of the user's aliases.

        Raises:
            NotFoundError: If the alias does not exist or is not the user's
        """
        alias = self.db.get_payee_alias(alias_id)
        if alias is None or alias.user_id != user_id:
            raise NotFoundError(alias_not_found(alias_id))
        self.db.delete_payee_alias(alias_id)
