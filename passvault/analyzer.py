"""
Security analysis of a set of credential entries.

Everything here is a pure function of the entries passed in, apart from
the optional breach oracle, which is consulted through a narrow
``is_compromised(password) -> bool`` interface and may fail.
"""

import re
import string
import logging
import datetime
from collections import Counter, defaultdict
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from . import config
from .models import CredentialEntry, PasswordAnalytics, SecurityReport, utcnow

logger = logging.getLogger(__name__)

_LOWER = re.compile(r'[a-z]')
_UPPER = re.compile(r'[A-Z]')
_DIGIT = re.compile(r'[0-9]')
_SYMBOL = re.compile('[' + re.escape(config.STRENGTH_SYMBOLS) + ']')


class SecurityAnalyzer:

    def __init__(self, breach_oracle=None,
                 expiry_days: int = config.PASSWORD_EXPIRY_DAYS_DEFAULT,
                 weak_threshold: int = config.WEAK_PASSWORD_THRESHOLD):
        """
        Args:
            breach_oracle: Object with ``is_compromised(password) -> bool``, or None
            expiry_days: Age after which entries without an explicit expiry are expired
            weak_threshold: Strength below which a password counts as weak
        """
        self.breach_oracle = breach_oracle
        self.expiry_days = expiry_days
        self.weak_threshold = weak_threshold

    @staticmethod
    def password_strength(password: str) -> int:
        """Additive 0-100 strength score."""
        score = 0
        if len(password) >= 8:
            score += 25
        if len(password) >= 12:
            score += 25
        if _LOWER.search(password) and _UPPER.search(password):
            score += 20
        if _DIGIT.search(password):
            score += 15
        if _SYMBOL.search(password):
            score += 15
        return min(100, score)

    @staticmethod
    def strength_label(score: int) -> str:
        if score < 30:
            return "weak"
        if score < 60:
            return "fair"
        if score < 80:
            return "good"
        return "strong"

    @staticmethod
    def check_master_passphrase(password: str) -> Tuple[bool, str]:
        """
        Check if a master passphrase meets minimum requirements.

        Returns:
            Tuple of (is_strong, message)
        """
        if len(password) < config.PASSWORD_MIN_LENGTH:
            return False, f"Password must be at least {config.PASSWORD_MIN_LENGTH} characters long"

        if not any(c.isupper() for c in password):
            return False, "Password must contain uppercase letters"
        if not any(c.islower() for c in password):
            return False, "Password must contain lowercase letters"
        if not any(c.isdigit() for c in password):
            return False, "Password must contain digits"
        if not any(c in string.punctuation for c in password):
            return False, "Password must contain special characters"

        return True, "Password is strong"

    @staticmethod
    def find_reused(entries: Iterable[CredentialEntry]) -> List[CredentialEntry]:
        """Every entry whose password is shared with at least one other entry."""
        groups: Dict[str, List[CredentialEntry]] = defaultdict(list)
        for entry in entries:
            groups[entry.password].append(entry)
        reused = []
        for group in groups.values():
            if len(group) > 1:
                reused.extend(group)
        return reused

    def is_expired(self, entry: CredentialEntry, now: Optional[datetime.datetime] = None) -> bool:
        now = now or utcnow()
        if entry.expiry_date is not None:
            return now > entry.expiry_date
        return now > entry.created_at + datetime.timedelta(days=self.expiry_days)

    def check_breach(self, password: str) -> Optional[bool]:
        """
        Ask the breach oracle about ``password``.

        Returns:
            True/False from the oracle, or None when there is no oracle or it is unavailable
        """
        if self.breach_oracle is None:
            return None
        try:
            return bool(self.breach_oracle.is_compromised(password))
        except Exception as e:
            logger.warning(f"Breach check unavailable, treating as unknown: {type(e).__name__}: {e}")
            return None

    def scan_breaches(self, entries: Iterable[CredentialEntry]) -> List[CredentialEntry]:
        """
        Copies of ``entries`` with ``is_compromised`` refreshed from the oracle.

        Entries whose lookup is unavailable keep their previous flag. Each
        distinct password is looked up once.
        """
        results: Dict[str, Optional[bool]] = {}
        scanned = []
        for entry in entries:
            if entry.password not in results:
                results[entry.password] = self.check_breach(entry.password)
            found = results[entry.password]
            scanned.append(entry if found is None else replace(entry, is_compromised=found))
        return scanned

    def with_strength(self, entries: Iterable[CredentialEntry]) -> List[CredentialEntry]:
        return [replace(e, strength=self.password_strength(e.password)) for e in entries]

    def analyze(self, entries: Iterable[CredentialEntry],
                now: Optional[datetime.datetime] = None) -> SecurityReport:
        """Build a security report over ``entries``."""
        entries = list(entries)
        now = now or utcnow()

        weak = [e for e in entries if self.password_strength(e.password) < self.weak_threshold]
        reused = self.find_reused(entries)
        expired = [e for e in entries if self.is_expired(e, now)]
        compromised = [e for e in entries if e.is_compromised]

        return SecurityReport(
            weak_passwords=len(weak),
            reused_passwords=len(reused),
            expired_passwords=len(expired),
            compromised_passwords=len(compromised),
            total_passwords=len(entries),
            security_score=self.aggregate_score(len(entries), len(weak), len(reused),
                                                len(expired), len(compromised)),
            generated_at=now,
            weak_ids=[e.id for e in weak],
            reused_ids=[e.id for e in reused],
            expired_ids=[e.id for e in expired],
            compromised_ids=[e.id for e in compromised],
        )

    @staticmethod
    def aggregate_score(total: int, weak: int, reused: int, expired: int, compromised: int) -> float:
        if total == 0:
            return 100.0
        score = (100
                 - config.WEIGHT_WEAK * weak / total
                 - config.WEIGHT_REUSED * reused / total
                 - config.WEIGHT_EXPIRED * expired / total
                 - config.WEIGHT_COMPROMISED * compromised / total)
        return float(max(0.0, min(100.0, score)))

    def password_analytics(self, entries: Iterable[CredentialEntry],
                           now: Optional[datetime.datetime] = None) -> PasswordAnalytics:
        entries = list(entries)
        now = now or utcnow()
        recent_cutoff = now - datetime.timedelta(days=config.RECENTLY_USED_DAYS)

        category_stats = Counter(e.category for e in entries)
        distribution = {"weak": 0, "fair": 0, "good": 0, "strong": 0}
        for entry in entries:
            distribution[self.strength_label(self.password_strength(entry.password))] += 1

        if entries:
            total_age = sum(((now - e.created_at) for e in entries), datetime.timedelta())
            average_age = (total_age / len(entries)).days
        else:
            average_age = 0

        most_used = category_stats.most_common(1)
        return PasswordAnalytics(
            total_passwords=len(entries),
            recently_used=sum(1 for e in entries if e.last_used and e.last_used > recent_cutoff),
            never_used=sum(1 for e in entries if e.last_used is None),
            category_stats=dict(category_stats),
            strength_distribution=distribution,
            average_password_age=average_age,
            most_used_category=most_used[0][0] if most_used else "None",
        )
