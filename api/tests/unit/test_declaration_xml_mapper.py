"""
Tests unitarios para el mapeo de payloads a campos del resumen.
"""
import json
from datetime import datetime, timezone

from app.application.services.declaration_xml_mapper import (
    SummaryData,
    extract_summary,
    map_60_1,
    map_61_1,
)

FULL_XML = """<?xml version="1.0" encoding="UTF-8"?>
<ccd>
  <ccd_01_01>ІМ</ccd_01_01>
  <ccd_01_02>40</ccd_01_02>
  <ccd_01_03>ДЕ</ccd_01_03>
  <ccd_05_01>3</ccd_05_01>
  <ccd_07_01>UA100110</ccd_07_01>
  <ccd_12_01>15234,50</ccd_12_01>
  <ccd_22_01>EUR</ccd_22_01>
  <ccd_22_02>350,00</ccd_22_02>
  <ccd_22_03>15234.50</ccd_22_03>
  <ccd_23_01>43,5271</ccd_23_01>
  <ccd_registered>20240115T093000</ccd_registered>
  <ccd_clients><ccd_cl_gr>02</ccd_cl_gr><ccd_cl_name>Sender GmbH</ccd_cl_name></ccd_clients>
  <ccd_clients><ccd_cl_gr>8</ccd_cl_gr><ccd_cl_name>ТОВ Отримувач</ccd_cl_name></ccd_clients>
  <ccd_clients><ccd_cl_gr>9</ccd_cl_gr><ccd_cl_name>---</ccd_cl_name></ccd_clients>
  <ccd_clients><ccd_cl_gr>014</ccd_cl_gr><ccd_cl_name>ТОВ Брокер</ccd_cl_name></ccd_clients>
  <ccd_clients><ccd_cl_gr>50</ccd_cl_gr><ccd_cl_name>ТОВ Перевізник</ccd_cl_name></ccd_clients>
  <ccd_bank><ccd_bn_name>АТ Банк</ccd_bn_name></ccd_bank>
  <ccd_goods><ccd_33_01>8471 30 00 00</ccd_33_01></ccd_goods>
  <ccd_goods><ccd_33_01>8471300000</ccd_33_01></ccd_goods>
  <ccd_goods><ccd_33_01>9403.20</ccd_33_01></ccd_goods>
  <ccd_transport><ccd_trn_name>AA1234BB</ccd_trn_name><ccd_trn_cnt>UA</ccd_trn_cnt></ccd_transport>
  <ccd_transport><ccd_trn_name>XY9876</ccd_trn_name></ccd_transport>
</ccd>"""


def test_map_61_1_reads_typed_fields():
    summary = map_61_1(FULL_XML)

    assert summary is not None
    assert summary.has_details is True
    assert summary.customs_value == 15234.5
    assert summary.total_items == 3
    assert summary.customs_office == "UA100110"
    assert summary.invoice_value == 350.0
    assert summary.invoice_currency == "EUR"
    assert summary.invoice_value_uah == 15234.5
    assert summary.exchange_rate == 43.5271
    assert summary.declaration_type == "ІМ / 40 / ДЕ"
    assert summary.registered_date == datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)


def test_map_61_1_resolves_clients_by_group():
    summary = map_61_1(FULL_XML)

    assert summary.sender_name == "Sender GmbH"
    assert summary.recipient_name == "ТОВ Отримувач"
    assert summary.contract_holder is None
    assert summary.representative_name == "ТОВ Брокер"
    assert summary.carrier_name == "ТОВ Перевізник"
    assert summary.bank_name == "АТ Банк"


def test_map_61_1_declarant_falls_back_to_representative():
    summary = map_61_1(FULL_XML)

    assert summary.declarant_name == "ТОВ Брокер"


def test_map_61_1_explicit_declarant_wins():
    xml = "<ccd><ccd_54_02>Декларант</ccd_54_02></ccd>"

    assert map_61_1(xml).declarant_name == "Декларант"


def test_map_61_1_hs_codes_are_distinct_digits():
    summary = map_61_1(FULL_XML)

    assert summary.hs_codes == ["8471300000", "940320"]


def test_map_61_1_transport_labels():
    summary = map_61_1(FULL_XML)

    assert summary.transport_details == "AA1234BB (UA), XY9876"


def test_map_61_1_defaults_and_zero_values():
    summary = map_61_1("<ccd><ccd_12_01>0</ccd_12_01><ccd_05_01>abc</ccd_05_01></ccd>")

    assert summary.currency == "UAH"
    assert summary.customs_value is None
    assert summary.total_items is None
    assert summary.hs_codes == []
    assert summary.transport_details is None


def test_map_61_1_invalid_xml_returns_none():
    assert map_61_1("<ccd><unclosed></ccd>") is None


def test_map_60_1_basic_fields():
    summary = map_60_1(
        {
            "ccd_type": "ІМ40ДЕ",
            "ccd_07_01": "UA209000",
            "ccd_registered": "20231201T101500",
            "trn_all": "AB1234CD",
        }
    )

    assert summary.declaration_type == "ІМ40ДЕ"
    assert summary.customs_office == "UA209000"
    assert summary.registered_date == datetime(2023, 12, 1, 10, 15, tzinfo=timezone.utc)
    assert summary.transport_details == "AB1234CD"
    assert summary.has_details is False


def test_map_60_1_without_useful_fields_returns_none():
    assert map_60_1({"guid": "g-1", "ccd_type": "---"}) is None


def test_extract_summary_prefers_61_1():
    payload = json.dumps({"data60_1": {"ccd_07_01": "UA209000"}, "data61_1": FULL_XML})

    summary = extract_summary(payload)

    assert summary.customs_office == "UA100110"
    assert summary.has_details is True


def test_extract_summary_falls_back_to_60_1_when_xml_is_broken():
    payload = json.dumps({"data60_1": {"ccd_07_01": "UA209000"}, "data61_1": "<broken"})

    summary = extract_summary(payload)

    assert summary.customs_office == "UA209000"
    assert summary.has_details is False


def test_extract_summary_nothing_useful():
    assert extract_summary(None) is None
    assert extract_summary(json.dumps({"data60_1": {}})) is None


def test_summary_columns_excludes_derived_fields():
    columns = SummaryData(customs_value=1.0, hs_codes=["1"]).summary_columns()

    assert "hs_codes" not in columns
    assert "has_details" not in columns
    assert columns["customs_value"] == 1.0
