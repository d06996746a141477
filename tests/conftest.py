"""
CLARK Entities - Test Configuration

Pytest fixtures and configuration for all tests.
"""
import json
from pathlib import Path
from typing import Any, Dict, Generator

import pytest

import config
from core.taxonomy import DEFAULT_LENGTHS, get_taxonomy
from domain.entities import LearningObject
from domain.outcomes import LearningOutcome
from domain.users import User


@pytest.fixture(autouse=True)
def fresh_taxonomy() -> Generator[None, None, None]:
    """Every test starts from the configured (default) taxonomy."""
    get_taxonomy.cache_clear()
    yield
    get_taxonomy.cache_clear()


@pytest.fixture
def taxonomy_document() -> Dict[str, Any]:
    """A small custom taxonomy with two taxa."""
    return {
        "verbs": {
            "recall": ["list", "name"],
            "build": ["assemble", "construct"],
        },
        "assessments": {
            "recall": ["quiz"],
            "build": ["project", "demo"],
        },
        "instructions": {
            "recall": ["lecture"],
            "build": ["lab", "studio"],
        },
        "lengths": list(DEFAULT_LENGTHS),
    }


@pytest.fixture
def custom_taxonomy(tmp_path: Path, monkeypatch, taxonomy_document):
    """Point CLARK_TAXONOMY_FILE at a custom taxonomy for one test."""
    path = tmp_path / "taxonomy.json"
    path.write_text(json.dumps(taxonomy_document), encoding="utf-8")
    monkeypatch.setenv("CLARK_TAXONOMY_FILE", str(path))
    config.reload_config()
    get_taxonomy.cache_clear()
    yield get_taxonomy()
    monkeypatch.undo()
    config.reload_config()


@pytest.fixture
def author() -> User:
    """Sample author."""
    return User(
        "nvisal1",
        "Nick Visalli",
        "nick@example.edu",
        "Towson University",
        "Builds learning objects",
    )


@pytest.fixture
def contributor() -> User:
    return User("skaza", "Sidd Kaza", "skaza@example.edu", "Towson University")


@pytest.fixture
def outcome() -> LearningOutcome:
    """An outcome with non-empty text, ready for submission."""
    return LearningOutcome(bloom="apply", verb="implement", text="a unit test for a pure function")


@pytest.fixture
def learning_object(author) -> LearningObject:
    """A named draft with a description but no outcomes."""
    learning_object = LearningObject(author, "Intro to Testing")
    learning_object.description = "Unit testing fundamentals"
    return learning_object


@pytest.fixture
def complete_object(learning_object, outcome, contributor) -> LearningObject:
    """A draft that satisfies every submission rule, with one child."""
    learning_object.add_outcome(outcome)
    learning_object.add_goal("Write tests before code")
    learning_object.add_contributor(contributor)
    learning_object.add_level("graduate")

    child = LearningObject(learning_object.author, "Test Doubles")
    child.description = "Mocks, stubs and fakes"
    child.add_outcome(LearningOutcome(bloom="understand", verb="explain", text="when to use a fake"))
    learning_object.add_child(child)
    return learning_object


@pytest.fixture
def persisted_document() -> Dict[str, Any]:
    """A learning object document in the private-attribute naming convention."""
    return {
        "_id": "5b9fd6f31b2f3c1c7c6c0a11",
        "_author": {
            "_username": "nvisal1",
            "_name": "Nick Visalli",
            "_email": "nick@example.edu",
            "_organization": "Towson University",
            "_bio": "",
            "_createdAt": "1537290000000",
        },
        "_name": "Intro to Testing",
        "_description": "Unit testing fundamentals",
        "_date": "1537300000000",
        "_length": "module",
        "_levels": ["undergraduate", "graduate"],
        "_goals": [{"_text": "Write tests before code"}],
        "_outcomes": [
            {
                "_tag": 3,
                "_bloom": "apply",
                "_verb": "implement",
                "_text": "a unit test",
                "_mappings": [
                    {
                        "author": "NCWF",
                        "name": "Software Developer",
                        "date": "2017",
                        "outcome": "Knowledge of software debugging principles",
                    }
                ],
                "_assessments": [
                    {"_sourceBloom": "apply", "_plan": "lab exercise", "_text": "Write three tests"}
                ],
                "_strategies": [
                    {"_sourceBloom": "apply", "_instruction": "lab", "_text": "Guided lab"}
                ],
            }
        ],
        "_materials": {
            "files": [
                {
                    "id": "f1",
                    "name": "slides.pdf",
                    "fileType": "application/pdf",
                    "extension": ".pdf",
                    "url": "https://files.example.edu/slides.pdf",
                    "date": "1537300000000",
                    "size": 1024,
                }
            ],
            "urls": [{"title": "pytest docs", "url": "https://docs.pytest.org"}],
            "notes": "Bring a laptop",
            "folderDescriptions": [],
            "pdf": {"name": "0ReadMeFirst.pdf", "url": "https://files.example.edu/readme.pdf"},
        },
        "_metrics": {"saves": 4, "downloads": 12},
        "_published": True,
        "_status": "released",
        "_children": ["5b9fd6f31b2f3c1c7c6c0a12"],
        "_contributors": [{"_username": "skaza", "_name": "Sidd Kaza", "_email": "skaza@example.edu"}],
        "_collection": "nccp",
        "_lock": {"restrictions": ["download"], "date": "1537300000000"},
        "reviewNotes": "Looks good",
    }
