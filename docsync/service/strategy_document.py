"""
Builds the markdown strategy document for the 'create document' flow.
"""

from datetime import date
from typing import Optional

from docsync.core.models import StrategyAnswers

STRATEGY_FILE_NAME = "team-strategy-document.md"


def missing_required_fields(answers: StrategyAnswers) -> bool:
    return not (answers.mission_statement.strip() and answers.core_values.strip() and answers.team_goals.strip())


def build_strategy_document(answers: StrategyAnswers, today: Optional[date] = None) -> str:
    """
    Render the team strategy document.

    Args:
        answers: Mission, values, goals and the selected focus goal
        today: Date stamped in the footer

    Returns:
        Markdown content

    Raises:
        ValueError: if mission statement, core values or team goals are empty
    """
    if missing_required_fields(answers):
        raise ValueError("Please fill in all required fields")

    today = today or date.today()
    return f"""# Team Strategy Document

## Mission Statement
{answers.mission_statement}

## Core Values
{answers.core_values}

## Team Goals
{answers.team_goals}

## Focus Goal - "{answers.goal_title}"
{answers.goal_description}

### Positive Impacts of Achieving This Goal
1. {answers.positive_impact_1}
2. {answers.positive_impact_2}
3. {answers.positive_impact_3}

---
Generated via AI-preneur Workshop
Date: {today.strftime("%m/%d/%Y")}
"""
