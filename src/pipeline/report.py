"""
Collectibles Appraiser — Report Compiler

Third oracle call: everything gathered so far -> the 8-section report.

The opening-sentence template is enforced by instruction only. A
non-conforming intro is logged, not rewritten.
"""

from __future__ import annotations

import json

import structlog

from src.models.appraisal import AppraisalReport, FusedEstimate
from src.models.item import ItemQuery
from src.models.pricing import PriceSignal
from src.models.web import WebSnippet
from src.oracle.client import ExtractionOracle
from src.oracle.prompts import report_system_for
from src.pipeline.fusion import dump_pricing, dump_snippets

logger = structlog.get_logger(__name__)


async def compile_report(
    oracle: ExtractionOracle,
    query: ItemQuery,
    fused: FusedEstimate | None,
    api_pricing: dict[str, PriceSignal | None],
    web: list[WebSnippet],
) -> AppraisalReport:
    """Ask the oracle for the standardized appraisal document."""
    evidence = {
        "query": query.model_dump(mode="json"),
        "fused": fused.model_dump(mode="json") if fused is not None else None,
        "apiPricing": dump_pricing(api_pricing),
        "webSnippets": dump_snippets(web),
    }
    raw = await oracle.extract_json(
        report_system_for(query.item_type),
        json.dumps(evidence),
        call="report",
    )
    report = AppraisalReport.model_validate(raw)

    if not report.intro_follows_template(query.item_type):
        logger.warning(
            "report_intro_template_mismatch",
            item_type=query.item_type,
            intro_prefix=report.intro[:60],
        )

    logger.info(
        "report_complete",
        counterfeit_risks=len(report.counterfeit_risks),
        verification_methods=len(report.verification_methods),
        next_steps=len(report.next_steps),
    )
    return report
