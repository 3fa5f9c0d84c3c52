import json

import numpy as np
import pandas as pd
import pytest

from talent_match.config import TalentMatchingRequest
from talent_match.talent_store import (
    TalentStore,
    TalentStoreError,
    apply_post_filters,
    load_talents,
    normalize_talents_df,
    parse_list_field,
    parse_records_field,
)


def _filters(**overrides):
    body = {"jobDescription": "any", "requiredSkills": ["python"]}
    body.update(overrides)
    return TalentMatchingRequest.model_validate(body)


def _ids(talents):
    return [t.id for t in talents]


def test_parse_list_field_shapes():
    assert parse_list_field(None) is None
    assert parse_list_field(float("nan")) is None
    assert parse_list_field("a, b ,c") == ["a", "b", "c"]
    assert parse_list_field('["x", "y"]') == ["x", "y"]
    assert parse_list_field(np.array(["p", "q"])) == ["p", "q"]


def test_parse_records_field_from_json_string():
    recs = parse_records_field('[{"degree": "B.S. Physics", "year": 2010}]')
    assert recs == [{"degree": "B.S. Physics", "year": 2010}]


def test_normalize_standardizes_camel_case_and_ids():
    raw = pd.DataFrame(
        {
            "talentId": [1, 2],
            "fullName": ["A", "B"],
            "yearsOfExperience": ["3", "x"],
            "skills": ["python, sql", None],
        }
    )
    df = normalize_talents_df(raw)
    assert list(df["id"]) == ["1", "2"]
    assert "full_name" in df.columns
    assert df.loc[0, "years_of_experience"] == 3
    assert np.isnan(df.loc[1, "years_of_experience"])
    assert df.loc[0, "skills"] == ["python", "sql"]


def test_normalize_drops_duplicate_ids():
    df = normalize_talents_df(pd.DataFrame({"id": ["a", "a", "b"], "skills": [["x"], ["y"], ["z"]]}))
    assert list(df["id"]) == ["a", "b"]


def test_required_skills_must_all_be_present(talent_records):
    store = TalentStore.from_records(talent_records)
    assert _ids(store.query(_filters())) == ["t1", "t2", "t3"]
    assert _ids(store.query(_filters(requiredSkills=["python", "fastapi"]))) == ["t1", "t3"]
    # exact, case-sensitive containment
    assert store.query(_filters(requiredSkills=["Python"])) == []


def test_empty_required_skills_matches_talents_with_skills(talent_records):
    records = talent_records + [{"id": "t4", "skills": None}]
    store = TalentStore.from_records(records)
    assert _ids(store.query(_filters(requiredSkills=[]))) == ["t1", "t2", "t3"]


def test_scalar_store_filters(talent_records):
    store = TalentStore.from_records(talent_records)
    assert _ids(store.query(_filters(isVerifiedOnly=True))) == ["t1"]
    assert _ids(store.query(_filters(isVerifiedOnly=False))) == ["t1", "t2", "t3"]
    assert _ids(store.query(_filters(location="london"))) == ["t1"]
    assert _ids(store.query(_filters(location=""))) == ["t1", "t2", "t3"]
    assert _ids(store.query(_filters(experienceLevel="mid"))) == ["t2"]


def test_location_filter_is_literal(talent_records):
    store = TalentStore.from_records(talent_records)
    assert _ids(store.query(_filters(location="%"))) == []
    assert _ids(store.query(_filters(location="l_ndon"))) == []
    assert _ids(store.query(_filters(location="DON, u"))) == ["t1"]


def test_experience_bounds_exclude_missing(talent_records):
    store = TalentStore.from_records(talent_records)
    assert _ids(store.query(_filters(minYearsOfExperience=5))) == ["t1"]
    assert _ids(store.query(_filters(maxYearsOfExperience=4))) == ["t2"]
    # zero is a real bound, and t3 has no experience value
    assert _ids(store.query(_filters(minYearsOfExperience=0))) == ["t1", "t2"]


def test_salary_filters(talent_records):
    store = TalentStore.from_records(talent_records)
    assert _ids(store.query(_filters(minSalary=70000))) == ["t1"]
    assert _ids(store.query(_filters(maxSalary=100000))) == ["t2"]
    assert _ids(store.query(_filters(currency="EUR"))) == ["t2"]


def test_post_filters(talent_records):
    store = TalentStore.from_records(talent_records)
    talents = store.query(_filters())

    assert _ids(apply_post_filters(talents, _filters(jobTypes=["contract"]))) == ["t2", "t3"]
    assert _ids(apply_post_filters(talents, _filters(desiredRoles=["backend", "data"]))) == ["t1", "t2"]
    assert _ids(apply_post_filters(talents, _filters(industries=["fintech"]))) == ["t1"]
    assert _ids(apply_post_filters(talents, _filters(remotePreference="hybrid"))) == ["t2"]
    assert _ids(apply_post_filters(talents, _filters(education="M.S. "))) == ["t1"]
    # empty lists mean "no filter"
    assert _ids(apply_post_filters(talents, _filters(jobTypes=[]))) == ["t1", "t2", "t3"]


def test_query_preserves_unknown_columns(talent_records):
    records = [dict(talent_records[0], linkedin_url="https://example.com/ada")]
    talent = TalentStore.from_records(records).query(_filters())[0]
    assert talent.model_dump()["linkedin_url"] == "https://example.com/ada"
    assert talent.salary_expectation_range.currency == "GBP"
    assert talent.education[0].degree.startswith("M.S.")


def test_query_wraps_failures(talent_records):
    store = TalentStore.from_records(talent_records)
    store.df = store.df.drop(columns=["id"])
    with pytest.raises(TalentStoreError):
        store.query(_filters())


def test_load_talents_json_and_missing(tmp_path, talent_records):
    path = tmp_path / "talents.json"
    path.write_text(json.dumps(talent_records), encoding="utf-8")
    store = TalentStore(load_talents(path))
    assert len(store) == 3

    with pytest.raises(TalentStoreError):
        load_talents(tmp_path / "nope.parquet")


def test_load_talents_jsonl(tmp_path, talent_records):
    path = tmp_path / "talents.jsonl"
    path.write_text("\n".join(json.dumps(r) for r in talent_records), encoding="utf-8")
    store = TalentStore.from_path(path)
    assert _ids(store.query(_filters(requiredSkills=["spark"]))) == ["t2"]
