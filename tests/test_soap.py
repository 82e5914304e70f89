import xml.etree.ElementTree as ET

import pytest
import requests

from erp_gateway.client import ERPClient
from erp_gateway.errors import BackendError, BackendUnavailable, CallerError
from erp_gateway.soap import (
    SOAP_ACTION,
    SOAP_NS,
    CustomerCreator,
    ReturnValueExtractor,
    build_envelope,
    escape_xml,
    missing_fields,
)

from conftest import SOAP_URL, FakeResponse, FakeSession

FIELDS = {
    "Name": "Smith & <Sons>",
    "Address": "1 O'Neil \"Street\"",
    "City": "Atlanta",
    "Post_Code": "30301",
    "Country_Region_Code": "US",
    "Phone_No": "555-0100",
    "E_Mail": "ap@smith.example",
    "CustomerTemplateCode": "CUST-DOM",
}

OK_RESPONSE = """<?xml version="1.0" encoding="utf-8"?>
<Soap:Envelope xmlns:Soap="http://schemas.xmlsoap.org/soap/envelope/">
  <Soap:Body>
    <CreateCustomer_Result xmlns="urn:microsoft-dynamics-schemas/codeunit/WebCustomerAPI">
      <return_value>CUST00123</return_value>
    </CreateCustomer_Result>
  </Soap:Body>
</Soap:Envelope>"""


def make_creator(config, responder):
    session = FakeSession(responder)
    return CustomerCreator(ERPClient(config, session=session), SOAP_URL), session


def test_escape_xml():
    assert escape_xml("a&b<c>d\"e'f") == "a&amp;b&lt;c&gt;d&quot;e&apos;f"


def test_envelope_is_well_formed_and_round_trips():
    root = ET.fromstring(build_envelope(FIELDS).encode("utf-8"))

    op = root.find(
        "{http://schemas.xmlsoap.org/soap/envelope/}Body/{%s}CreateCustomer" % SOAP_NS
    )
    assert op is not None
    values = {child.tag.split("}")[1]: child.text for child in op}
    assert values == {
        "name": "Smith & <Sons>",
        "address": "1 O'Neil \"Street\"",
        "city": "Atlanta",
        "postCode": "30301",
        "countryCode": "US",
        "phoneNo": "555-0100",
        "email": "ap@smith.example",
        "customerTemplateCode": "CUST-DOM",
    }


def test_missing_fields_collects_all():
    fields = dict(FIELDS, City="", E_Mail=None)
    assert missing_fields(fields) == ["City", "E_Mail"]


def test_create_returns_customer_no(config):
    creator, session = make_creator(config, lambda m, u: FakeResponse(text=OK_RESPONSE, headers={}))
    assert creator.create(FIELDS) == "CUST00123"

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == SOAP_URL
    assert call["headers"]["SOAPAction"] == SOAP_ACTION
    assert call["headers"]["Authorization"] == config.auth_header
    assert call["headers"]["Content-Type"].startswith("text/xml")
    ET.fromstring(call["data"])


def test_missing_fields_rejected_before_any_request(config):
    creator, session = make_creator(config, lambda m, u: FakeResponse(text=OK_RESPONSE))
    fields = {k: v for k, v in FIELDS.items() if k not in ("Phone_No", "Post_Code")}

    with pytest.raises(CallerError) as exc:
        creator.create(fields)

    assert exc.value.extra["missingFields"] == ["Post_Code", "Phone_No"]
    assert session.calls == []


def test_upstream_fault_is_backend_error_with_body(config):
    fault = "<s:Fault><faultstring>Template not found</faultstring></s:Fault>"
    creator, _ = make_creator(
        config, lambda m, u: FakeResponse(status_code=500, text=fault, reason="Internal Server Error")
    )
    with pytest.raises(BackendError) as exc:
        creator.create(FIELDS)
    assert exc.value.extra["response"] == fault
    assert exc.value.upstream_status == 500


def test_missing_return_value_is_malformed(config):
    creator, _ = make_creator(config, lambda m, u: FakeResponse(text="<Envelope><Body/></Envelope>"))
    with pytest.raises(BackendError) as exc:
        creator.create(FIELDS)
    assert exc.value.details == "malformed upstream response"


def test_timeout_is_backend_unavailable(config):
    def slow(m, u):
        raise requests.exceptions.ReadTimeout()

    creator, _ = make_creator(config, slow)
    with pytest.raises(BackendUnavailable):
        creator.create(FIELDS)


def test_extractor_trims_and_takes_first():
    xml = "<r><return_value>  C1 </return_value><return_value>C2</return_value></r>"
    assert ReturnValueExtractor().extract(xml) == "C1"


def test_extractor_can_be_replaced(config):
    class FixedExtractor(ReturnValueExtractor):
        def extract(self, xml_text):
            return "FIXED"

    session = FakeSession(lambda m, u: FakeResponse(text="<anything/>"))
    creator = CustomerCreator(ERPClient(config, session=session), SOAP_URL, extractor=FixedExtractor())
    assert creator.create(FIELDS) == "FIXED"
