import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from homematch.models import Property
from homematch.models.base import json_array_length
from homematch.schemas.property import PropertyFilters
from homematch.services.filters import FilterRule, PropertyFilterBuilder


def compile_sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": False}))


def test_empty_filters_add_no_clauses():
    builder = PropertyFilterBuilder()
    assert builder.build(PropertyFilters()) == []
    stmt = builder.apply(select(Property), PropertyFilters())
    assert "WHERE" not in compile_sql(stmt)


def test_range_filters_map_to_columns():
    builder = PropertyFilterBuilder()
    filters = PropertyFilters(price_min=100000, price_max=500000, bedrooms_min=2, lot_size_max=8000)
    sql = compile_sql(builder.apply(select(Property), filters))
    assert "properties.price >= " in sql
    assert "properties.price <= " in sql
    assert "properties.bedrooms >= " in sql
    assert "properties.lot_size_sqft <= " in sql
    assert len(builder.build(filters)) == 4


def test_list_filters_use_in_and_skip_empty_lists():
    builder = PropertyFilterBuilder()
    filters = PropertyFilters(property_types=["condo", "townhome"], neighborhoods=[], listing_status=["active"])
    clauses = builder.build(filters)
    assert len(clauses) == 2
    sql = compile_sql(builder.apply(select(Property), filters))
    assert "properties.property_type IN" in sql
    assert "properties.listing_status IN" in sql
    assert "neighborhood_id" not in sql


def test_each_amenity_is_a_containment_check():
    filters = PropertyFilters(amenities=["pool", "garage"])
    sql = compile_sql(PropertyFilterBuilder().apply(select(Property), filters))
    assert sql.count("@>") == 2


def test_cities_are_or_of_city_state_pairs():
    filters = PropertyFilters(cities=[{"city": "Austin", "state": "tx"}, {"city": "Denver", "state": "CO"}])
    clauses = PropertyFilterBuilder().build(filters)
    assert len(clauses) == 1
    sql = compile_sql(select(Property).where(*clauses))
    assert " OR " in sql
    assert "lower(properties.city)" in sql


def test_within_radius_adds_bounding_box():
    filters = PropertyFilters(within_radius={"center": [-97.7431, 30.2672], "radius_km": 5})
    sql = compile_sql(PropertyFilterBuilder().apply(select(Property), filters))
    assert "properties.latitude BETWEEN" in sql
    assert "properties.longitude BETWEEN" in sql



def test_within_radius_across_antimeridian_ors_both_sides():
    filters = PropertyFilters(within_radius={"center": [179.99, 0], "radius_km": 10})
    sql = compile_sql(PropertyFilterBuilder().apply(select(Property), filters))
    assert sql.count("properties.longitude BETWEEN") == 2
    assert " OR " in sql


def test_json_array_length_guards_non_arrays_on_postgres():
    sql = compile_sql(select(Property.id).where(json_array_length(Property.images) > 0))
    assert "jsonb_typeof(properties.images)" in sql
    assert "jsonb_array_length(properties.images)" in sql

def test_rules_can_be_added_and_removed():
    builder = PropertyFilterBuilder()
    builder.remove_filter_rule("price_min")
    assert all(rule.filter_key != "price_min" for rule in builder.get_filter_rules())
    assert builder.build(PropertyFilters(price_min=10)) == []

    with pytest.raises(ValueError):
        builder.add_filter_rule(FilterRule("price_min", "price", "between"))


def test_custom_rule_with_transform():
    builder = PropertyFilterBuilder(rules=[FilterRule("price_min", "price", "gte", transform=lambda v: v * 1000)])
    clause = builder.build(PropertyFilters(price_min=250))[0]
    assert clause.right.value == 250000


def test_builder_instances_do_not_share_rules():
    first = PropertyFilterBuilder()
    second = PropertyFilterBuilder()
    first.remove_filter_rule("bedrooms_min")
    assert any(rule.filter_key == "bedrooms_min" for rule in second.get_filter_rules())


def test_inverted_ranges_are_rejected():
    with pytest.raises(ValueError):
        PropertyFilters(price_min=500, price_max=100)


def test_neighborhood_ids_are_uuids():
    neighborhood_id = uuid.uuid4()
    clauses = PropertyFilterBuilder().build(PropertyFilters(neighborhoods=[str(neighborhood_id)]))
    assert clauses[0].right.value == [neighborhood_id]
