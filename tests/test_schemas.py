import pytest
from pydantic import ValidationError

from nexus_core.schemas import Constraints, Idea, Iteration, Score


def test_score_total_is_mean_of_dimensions() -> None:
    score = Score(novelty=8, feasibility=7, impact=9, cost_efficiency=6)

    assert score.total == pytest.approx(7.5)


def test_score_total_boundaries() -> None:
    assert Score(novelty=0, feasibility=0, impact=0, cost_efficiency=0).total == 0.0
    assert Score(novelty=10, feasibility=10, impact=10, cost_efficiency=10).total == 10.0


def test_score_supplied_total_is_ignored() -> None:
    score = Score.from_dict(
        {"novelty": 2, "feasibility": 4, "impact": 6, "costEfficiency": 8, "total": 99}
    )

    assert score.total == pytest.approx(5.0)


def test_score_rejects_out_of_range_dimensions() -> None:
    with pytest.raises(ValidationError):
        _ = Score(novelty=11, feasibility=5, impact=5, cost_efficiency=5)
    with pytest.raises(ValidationError):
        _ = Score(novelty=5, feasibility=-0.5, impact=5, cost_efficiency=5)


def test_score_alias_and_field_name_both_accepted() -> None:
    by_alias = Score.from_dict({"novelty": 1, "feasibility": 2, "impact": 3, "costEfficiency": 4})
    by_name = Score(novelty=1, feasibility=2, impact=3, cost_efficiency=4)

    assert by_alias == by_name
    assert by_alias.to_dict()["total"] == pytest.approx(2.5)


def test_constraints_accept_camel_case_keys() -> None:
    constraints = Constraints.from_dict(
        {
            "domain": "Retail",
            "problem": "Cart abandonment",
            "budgetLimit": "$10k",
            "timeline": "1 quarter",
            "otherRequirements": "GDPR",
        }
    )

    assert constraints.budget_limit == "$10k"
    assert constraints.other_requirements == "GDPR"


def test_constraints_allow_empty_fields() -> None:
    constraints = Constraints()

    assert constraints.domain == ""
    assert constraints.problem == ""


def test_idea_requires_non_empty_text() -> None:
    with pytest.raises(ValidationError):
        _ = Idea(id="idea-0", title="", description="something")
    with pytest.raises(ValidationError):
        _ = Idea(id="idea-0", title="Title", description="")


def test_idea_is_scored() -> None:
    idea = Idea(id="idea-0", title="Loyalty Loop", description="Points for referrals")
    scored = idea.model_copy(
        update={"score": Score(novelty=5, feasibility=5, impact=5, cost_efficiency=5)}
    )

    assert not idea.is_scored
    assert scored.is_scored


def test_iteration_json_round_trip_keeps_patterns() -> None:
    iteration = Iteration(
        index=1,
        ideas=[
            Idea(
                id="idea-0",
                title="Loyalty Loop",
                description="Points for referrals",
                score=Score(novelty=6, feasibility=8, impact=7, cost_efficiency=9),
                rationale="Cheap to run",
            )
        ],
        average_score=7.5,
        delta_score=0.5,
        patterns_identified=["Reward the habit"],
    )

    restored = Iteration.from_json(iteration.to_json())

    assert restored == iteration
    assert restored.scored_count == 1


def test_iteration_index_validation() -> None:
    with pytest.raises(ValidationError):
        _ = Iteration(index=-1, ideas=[], average_score=0.0)
