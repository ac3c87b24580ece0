"""Module de rapprochement d'identité."""

from lareprise.matching.matcher import IdentityMatcher
from lareprise.matching.schema import MatchCandidate, MatchFactors, MatchResult, MatchStatus, MatchTier

__all__ = ["IdentityMatcher", "MatchCandidate", "MatchFactors", "MatchResult", "MatchStatus", "MatchTier"]
