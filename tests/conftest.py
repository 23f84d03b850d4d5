"""Pytest configuration and fixtures for qapisql tests."""

import pytest
from dotenv import load_dotenv

from entities import Inner1, Inner2, Product, Sample, SampleM2M, SampleName, SamplePoly
from qapisql.constants import RelationType
from qapisql.introspection import SchemaCache
from qapisql.joins import JoinRegistry
from qapisql.schema import JoinConfig

# Load environment variables
load_dotenv()


@pytest.fixture
def cache():
    """A fresh schema cache, isolated from the process-wide one."""
    return SchemaCache()


@pytest.fixture(scope="session")
def entities():
    return {
        "Sample": Sample,
        "SamplePoly": SamplePoly,
        "SampleM2M": SampleM2M,
        "SampleName": SampleName,
        "Inner1": Inner1,
        "Inner2": Inner2,
        "Product": Product,
    }


@pytest.fixture
def inner_registry():
    """Registry joining Sample.InnerF as a one-to-one relation."""
    registry = JoinRegistry()
    registry.register(
        "InnerF",
        JoinConfig(type=RelationType.ONE_TO_ONE, table="Inner1", local_key="ID", foreign_key="SampleID"),
    )
    return registry


@pytest.fixture
def poly_registry():
    """Registry joining SamplePoly.InnerF through the Holder discriminator."""
    registry = JoinRegistry()
    registry.register(
        "InnerF",
        JoinConfig(
            type=RelationType.POLYMORPHIC,
            table="Inner1",
            polymorphic_id="HolderID",
            polymorphic_type="HolderType",
            polymorphic_value="SamplePoly",
        ),
    )
    return registry
