"""
Reel - Media File Renamer

Identify movie and TV episode files from their names, match them against
TMDB and rename them with user templates.
"""
from .models import (
    MediaKind,
    ParsedTokens,
    CandidateRecord,
    MovieFacet,
    EpisodeFacet,
    Resolved,
    Unresolved,
    UnresolvedReason,
    PlanStatus,
    RenamePlanEntry,
    ReportRow,
)
from .parser import tokenize
from .provider import MetadataProvider, ProviderError
from .tmdb import TMDBClient, TMDBError
from .matcher import Matcher
from .batch import match_files
from .formatter import render, UnresolvedPlaceholder, TemplateError
from .planner import NamingTemplates, RenamePlan, plan, execute, revert_plan
from .cancellation import CancellationToken, Cancelled
from .cache import Cache

__version__ = "0.1.0"
__all__ = [
    "MediaKind",
    "ParsedTokens",
    "CandidateRecord",
    "MovieFacet",
    "EpisodeFacet",
    "Resolved",
    "Unresolved",
    "UnresolvedReason",
    "PlanStatus",
    "RenamePlanEntry",
    "ReportRow",
    "tokenize",
    "MetadataProvider",
    "ProviderError",
    "TMDBClient",
    "TMDBError",
    "Matcher",
    "match_files",
    "render",
    "UnresolvedPlaceholder",
    "TemplateError",
    "NamingTemplates",
    "RenamePlan",
    "plan",
    "execute",
    "revert_plan",
    "CancellationToken",
    "Cancelled",
    "Cache",
]
