"""
Standard-specific checks for the examination results nested in qualifications
"""
from typing import List, Optional, Sequence

from app.models.academic import VALID_BRANCHES, ExaminationResult, Qualification, Standard
from app.utils.exceptions import InvalidPgBranchError, MissingPgFieldsError, MissingUgFieldsError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def missing_result_fields(result: ExaminationResult) -> List[str]:
    """Names of the required result fields that are empty (falsy)"""
    aggregate = result.aggregate
    checks = {
        "branch": result.branch,
        "aggregate.cgpa": aggregate.cgpa if aggregate else None,
        "aggregate.class": aggregate.class_ if aggregate else None,
        "aggregate.percentage": aggregate.percentage if aggregate else None,
    }
    return [name for name, value in checks.items() if not value]


def resolve_pg_branch(own_branch: Optional[str], research_interest_branch: Optional[str]) -> Optional[str]:
    """Own branch wins when valid, otherwise fall back to the research interest branch"""
    if own_branch in VALID_BRANCHES:
        return own_branch
    if research_interest_branch in VALID_BRANCHES:
        return research_interest_branch
    return None


def validate_qualifications(
    qualifications: Sequence[Qualification],
    research_interest_branch: Optional[str] = None,
) -> None:
    """
    Validate qualifications in order, stopping at the first failure.

    PG results have their ``branch`` rewritten in place to the resolved branch.

    Raises:
        MissingUgFieldsError: a UG result lacks branch or an aggregate field
        InvalidPgBranchError: neither the qualification nor the research interest names a valid branch
        MissingPgFieldsError: a PG result lacks an aggregate field
    """
    for index, qualification in enumerate(qualifications or []):
        results = qualification.examination_results
        if results is None:
            continue

        if qualification.standard == Standard.UG and results.ug is not None:
            missing = missing_result_fields(results.ug)
            if missing:
                logger.info(f"UG qualification {index} is missing {missing}")
                raise MissingUgFieldsError(index=index, missing_fields=missing)

        if qualification.standard == Standard.PG and results.pg is not None:
            branch = resolve_pg_branch(qualification.branch, research_interest_branch)
            if branch is None:
                logger.info(f"PG qualification {index} has no valid branch to resolve")
                raise InvalidPgBranchError(index=index, branch=qualification.branch)
            results.pg.branch = branch

            missing = missing_result_fields(results.pg)
            if missing:
                logger.info(f"PG qualification {index} is missing {missing}")
                raise MissingPgFieldsError(index=index, missing_fields=missing)
