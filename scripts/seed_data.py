"""Seed the system with sample schemes, eligibility rules and a profile for development."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from scheme_assist.config.settings import Settings
from scheme_assist.context import ServiceContext
from scheme_assist.eligibility.rules import CitizenProfile, spec_from_dict
from scheme_assist.embeddings.openai_embedder import OpenAIEmbedder
from scheme_assist.ingestion.scheme_indexer import SchemeIndexer
from scheme_assist.models.domain import Section
from scheme_assist.observability.logger import setup_logging
from scheme_assist.storage.sqlite_profile_store import SQLiteProfileStore, SQLiteRuleStore
from scheme_assist.vectorstore.faiss_store import FAISSVectorStore

SAMPLE_SCHEMES = [
    {
        "scheme_id": "PM-KISAN",
        "sections": {
            Section.GENERAL: (
                "Pradhan Mantri Kisan Samman Nidhi (PM-KISAN) is a central sector scheme "
                "that provides income support to landholding farmer families."
            ),
            Section.BENEFITS: (
                "Eligible farmer families receive 6000 rupees per year, paid in three equal "
                "instalments of 2000 rupees directly into their bank accounts."
            ),
            Section.ELIGIBILITY: (
                "All landholding farmer families are eligible. Institutional landholders, "
                "income tax payers and pensioners drawing 10000 rupees or more are excluded."
            ),
            Section.PROCESS: (
                "Farmers can register through the PM-KISAN portal, the nearest Common Service "
                "Centre, or the local revenue officer. Aadhaar and land records are required."
            ),
        },
        "eligibility": {
            "combinator": "all",
            "rules": [
                {"field": "age", "operator": "ge", "value": 18, "required": True},
                {"field": "income", "operator": "le", "value": 250000, "required": True},
            ],
            "application_guidance": (
                "Register on the PM-KISAN portal or visit your nearest Common Service Centre "
                "with your Aadhaar card and land records."
            ),
        },
    },
    {
        "scheme_id": "PMAY-G",
        "sections": {
            Section.GENERAL: (
                "Pradhan Mantri Awas Yojana Gramin (PMAY-G) helps rural households without a "
                "pucca house build one."
            ),
            Section.BENEFITS: (
                "Assistance of 120000 rupees in plain areas and 130000 rupees in hilly areas "
                "is provided for house construction."
            ),
            Section.ELIGIBILITY: (
                "Houseless households and households living in kutcha houses, identified "
                "from SECC data, are eligible. Priority goes to SC, ST and minority households."
            ),
        },
        "eligibility": {
            "combinator": "any",
            "rules": [
                {"field": "caste_category", "operator": "in", "value": ["sc", "st"], "required": False},
                {"field": "income", "operator": "lt", "value": 120000, "required": False},
            ],
            "application_guidance": "Contact your Gram Panchayat to be included in the beneficiary list.",
        },
    },
]

SAMPLE_PROFILE = CitizenProfile(
    user_id="demo-user",
    age=35,
    income=200000,
    location="Nashik, Maharashtra",
    caste_category="obc",
    gender="female",
)


async def main():
    settings = Settings()
    setup_logging(json_output=False)

    Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)

    profile_store = SQLiteProfileStore(settings.sqlite_db_path)
    await profile_store.initialize()
    rule_store = SQLiteRuleStore(settings.sqlite_db_path)
    context = ServiceContext.create(settings)

    embedder = OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        _dimensions=settings.embedding_dimensions,
    )
    vector_store = FAISSVectorStore(
        dimensions=settings.embedding_dimensions,
        index_path=settings.faiss_index_path,
    )
    indexer = SchemeIndexer(embedder, vector_store, context)

    for scheme in SAMPLE_SCHEMES:
        chunks = await indexer.index_scheme(scheme["scheme_id"], scheme["sections"])
        await rule_store.save_spec(
            spec_from_dict({**scheme["eligibility"], "scheme_id": scheme["scheme_id"]})
        )
        print(f"  Indexed {scheme['scheme_id']}: {chunks} chunks")

    await profile_store.save_profile(SAMPLE_PROFILE)
    vector_store.save()
    print(f"\nSeeding complete. Index size: {vector_store.size}")


if __name__ == "__main__":
    asyncio.run(main())
