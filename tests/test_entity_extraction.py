from datetime import date
from typing import List, Optional
from pathlib import Path

import pytest

from vaultsearch.domain.entities import Document, DocumentEntity
from vaultsearch.domain.value_objects import EntityCategory
from vaultsearch.services.analysis_engine import AnalysisEngine
from vaultsearch.services.entity_extraction_service import EntityExtractionService
from vaultsearch.services.model_store import ModelArtifactStore
from vaultsearch.services.providers import MockGenerativeProvider
from vaultsearch.services.providers.base import GenerativeProvider
from vaultsearch.utils.entity_patterns import (
    detect_category,
    extract_amounts,
    extract_total_amount,
    find_known_vendor,
    find_preposition_vendor,
    parse_date,
)
from vaultsearch.utils.model_output import parse_analysis_response, parse_entity_response

RECEIPT = """WHOLE FOODS MARKET
Produce   $4.99
Dairy     $3.49
TOTAL     $8.48
03/14/2024
"""


class ScriptedProvider(GenerativeProvider):
    name = "scripted"
    requires_model_file = False

    def __init__(self, entity_response: str):
        self.entity_response = entity_response
        self.calls = 0
        self._loaded = False

    def load(self, model_path: Optional[Path]) -> None:
        self._loaded = True

    def is_loaded(self) -> bool:
        return self._loaded

    def unload(self) -> None:
        self._loaded = False

    def analyze(self, query: str, documents: List[Document]) -> str:
        return "ANSWER: none"

    def extract_entities(self, text: str) -> str:
        self.calls += 1
        return self.entity_response


async def _service(provider: GenerativeProvider, tmp_path, load: bool = True) -> EntityExtractionService:
    engine = AnalysisEngine(provider, ModelArtifactStore(tmp_path))
    if load:
        await engine.load()
    return EntityExtractionService(engine)


def test_known_vendor_prefers_longest_name():
    assert find_known_vendor("Thanks for shopping at Whole Foods") == "Whole Foods"
    assert find_known_vendor("HOME DEPOT #123") == "Home Depot"
    assert find_known_vendor("targeted ads") is None


def test_preposition_vendor():
    assert find_preposition_vendor("Lunch at Joe's Diner today") == "Joe's Diner"
    assert find_preposition_vendor("lunch at noon") is None


def test_amounts():
    assert extract_amounts("a $4.99 b $1,234.50 c $7") == [4.99, 1234.50, 7.0]
    assert extract_total_amount(RECEIPT) == 8.48
    assert extract_total_amount("Subtotal 10.00\nTotal: 12.50") == 12.50
    assert extract_total_amount("no numbers here") is None


@pytest.mark.parametrize("text,expected", [
    ("Date: 03/14/2024", date(2024, 3, 14)),
    ("Date: 3/4/24", date(2024, 3, 4)),
    ("2024-03-14 10:22", date(2024, 3, 14)),
    ("13/45/2024 then 01/02/2024", date(2024, 1, 2)),
    ("no date", None),
])
def test_parse_date(text, expected):
    assert parse_date(text) == expected


def test_detect_category():
    assert detect_category(RECEIPT) == EntityCategory.GROCERY
    assert detect_category("Unleaded gas 10 gallon at pump 4") == EntityCategory.FUEL
    assert detect_category("Kitchen sink repairs, plumber labor") == EntityCategory.SERVICES
    assert detect_category("lorem ipsum") is None


def test_entity_has_data_ignores_other_category():
    assert not DocumentEntity(category=EntityCategory.OTHER).has_data()
    assert DocumentEntity(category=EntityCategory.FUEL).has_data()
    assert DocumentEntity(amount=0.0).has_data()


def test_pattern_extraction():
    entity = EntityExtractionService.extract_with_patterns(RECEIPT)
    assert entity.vendor == "Whole Foods"
    assert entity.amount == 8.48
    assert entity.transaction_date == date(2024, 3, 14)
    assert entity.category == EntityCategory.GROCERY
    assert entity.confidence == 0.6


def test_pattern_extraction_with_nothing_found():
    entity = EntityExtractionService.extract_with_patterns("lorem ipsum")
    assert entity.category == EntityCategory.OTHER
    assert entity.confidence == 0.0
    assert not entity.has_data()


async def test_model_is_not_consulted_when_patterns_suffice(tmp_path):
    provider = ScriptedProvider("VENDOR: Other\nAMOUNT: 1.00")
    service = await _service(provider, tmp_path)
    entity = await service.extract("d1", RECEIPT)
    assert provider.calls == 0
    assert entity.vendor == "Whole Foods"


async def test_model_fills_only_missing_fields(tmp_path):
    provider = ScriptedProvider("VENDOR: Joe's Diner\nAMOUNT: 99.00\nDATE: 2024-01-01\nCATEGORY: restaurant")
    service = await _service(provider, tmp_path)
    entity = await service.extract("d1", "Burger and fries $12.40 on 02/03/2024")

    assert provider.calls == 1
    assert entity.vendor == "Joe's Diner"
    assert entity.amount == 12.40
    assert entity.transaction_date == date(2024, 2, 3)
    assert entity.category == EntityCategory.RESTAURANT
    assert entity.confidence == 0.85


async def test_unloaded_model_keeps_pattern_results(tmp_path):
    provider = ScriptedProvider("VENDOR: Joe's Diner")
    service = await _service(provider, tmp_path, load=False)
    entity = await service.extract("d1", "Burger and fries $12.40")
    assert provider.calls == 0
    assert entity.vendor is None
    assert entity.amount == 12.40
    assert entity.confidence == 0.6


async def test_mock_provider_extracts_preposition_vendor(tmp_path):
    service = await _service(MockGenerativeProvider(), tmp_path)
    entity = await service.extract("d1", "Dinner at Luigi's Trattoria, total $42.00")
    assert entity.vendor == "Luigi's Trattoria"
    assert entity.amount == 42.00
    assert entity.confidence == 0.85


def test_parse_entity_response_handles_noise():
    entity = parse_entity_response(
        "Sure! Here you go.\nVENDOR: \"Kroger\"\nAMOUNT: $1,045.20\nDATE: 03/14/2024\nCATEGORY: Grocery.\n"
    )
    assert entity.vendor == "Kroger"
    assert entity.amount == 1045.20
    assert entity.transaction_date == date(2024, 3, 14)
    assert entity.category == EntityCategory.GROCERY


def test_parse_entity_response_none_values():
    entity = parse_entity_response("VENDOR: NONE\nAMOUNT: unknown\nDATE: N/A\nCATEGORY: spaceships")
    assert entity == DocumentEntity()


def test_parse_analysis_response():
    result = parse_analysis_response(
        "ANSWER: You spent $45.00 at Kroger\nacross three visits.\nCONFIDENCE: 1.7\n"
        "FILTER: vendor=Kroger; aggregate=true",
        result_limit=100,
    )
    assert result.analysis_text == "You spent $45.00 at Kroger across three visits."
    assert result.confidence == 1.0
    assert result.structured_filter.vendor == "Kroger"
    assert result.structured_filter.aggregate


def test_parse_analysis_response_without_content():
    assert parse_analysis_response("I cannot help with that", result_limit=100) is None
    result = parse_analysis_response("ANSWER: Nothing relevant\nCONFIDENCE: high\nFILTER: NONE", result_limit=100)
    assert result.confidence == 0.5
    assert result.structured_filter is None
