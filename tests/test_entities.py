"""Tests for external entity detection."""

import pytest

from threatflow.entities import (
    EndpointDetector,
    ExternalEntityDetector,
    RepositoryDetector,
    ServiceClientDetector,
    mapping_path,
)
from threatflow.facts import AnnotationFact
from threatflow.model import ExternalEntityType


class TestMappingPath:
    """Test path extraction from mapping annotations."""

    def test_single_value(self):
        a = AnnotationFact(name="GetMapping", value='"/users"')
        assert mapping_path(a) == "/users"

    def test_first_path_pair(self):
        a = AnnotationFact(
            name="RequestMapping",
            pairs=[("method", "GET"), ("value", '"/v1"'), ("path", '"/x"')],
        )
        assert mapping_path(a) == "/v1"

    def test_pairs_from_mapping(self):
        a = AnnotationFact.model_validate(
            {"name": "PostMapping", "pairs": {"path": '"/items"'}}
        )
        assert mapping_path(a) == "/items"

    def test_marker(self):
        assert mapping_path(AnnotationFact(name="PostMapping")) == ""


class TestEndpointDetector:
    """Test web client entities for controllers."""

    @pytest.fixture
    def detector(self):
        return EndpointDetector()

    def test_controller_with_base_path(self, detector, shop_facts):
        controller = shop_facts[2]
        entity = detector.detect(controller)

        assert entity is not None
        assert entity.name == "WebClient-OrderController"
        assert entity.type == ExternalEntityType.USER
        assert entity.protocols == ["HTTP/HTTPS"]
        assert entity.description == (
            "Web client accessing REST endpoints in OrderController"
        )
        assert entity.metadata["basePath"] == "/orders"
        assert entity.metadata["endpoint-getOrder"] == "/orders/{id}"
        assert entity.metadata["endpoint-createOrder"] == "/orders"

    def test_controller_without_base_path(
        self, detector, make_type, make_method
    ):
        fact = make_type(
            "PingController",
            annotations={"Controller": None},
            methods=[
                make_method(
                    "ping",
                    annotations=[{"name": "GetMapping", "value": '"/ping"'}],
                ),
                make_method("helper"),
            ],
        )
        entity = detector.detect(fact)

        assert entity is not None
        assert "basePath" not in entity.metadata
        assert entity.metadata == {"endpoint-ping": "/ping"}

    def test_non_controller(self, detector, make_type):
        assert detector.detect(make_type("OrderMapper")) is None


class TestRepositoryDetector:
    """Test database entities for repositories."""

    @pytest.fixture
    def detector(self):
        return RepositoryDetector()

    @pytest.mark.parametrize("name", ["UserRepository", "UserDAO"])
    def test_by_name(self, detector, make_type, name):
        entity = detector.detect(make_type(name))
        assert entity is not None
        assert entity.name == f"Database-{name}"
        assert entity.type == ExternalEntityType.DATABASE
        assert entity.protocols == ["JDBC/SQL"]
        assert entity.description == f"Database accessed by {name}"

    def test_by_annotation(self, detector, make_type):
        fact = make_type("Users", annotations={"Repository": None})
        entity = detector.detect(fact)
        assert entity is not None
        assert entity.name == "Database-Users"

    def test_not_a_repository(self, detector, make_type):
        assert detector.detect(make_type("UserMapper")) is None


class TestServiceClientDetector:
    """Test service entities and protocol rules."""

    @pytest.fixture
    def detector(self):
        return ServiceClientDetector()

    @pytest.mark.parametrize(
        ("name", "protocol"),
        [
            ("PaymentRestClient", "HTTP/HTTPS"),
            ("InventorySoapClient", "SOAP"),
            ("KafkaEventService", "Kafka"),
            ("JmsNotificationService", "JMS"),
            ("BillingClient", "Unknown"),
        ],
    )
    def test_protocols(self, detector, make_type, name, protocol):
        entity = detector.detect(make_type(name))
        assert entity is not None
        assert entity.name == f"Service-{name}"
        assert entity.type == ExternalEntityType.SERVICE
        assert entity.protocols == [protocol]
        assert entity.description == f"External service accessed by {name}"

    def test_by_annotation(self, detector, make_type):
        fact = make_type("Mailer", annotations={"FeignClient": None})
        entity = detector.detect(fact)
        assert entity is not None
        assert entity.protocols == ["Unknown"]

    def test_not_a_service(self, detector, make_type):
        assert detector.detect(make_type("Order")) is None


class TestExternalEntityDetector:
    """Test that sub-detectors run independently."""

    def test_repository_type_yields_database_entity(self, make_type):
        entities = ExternalEntityDetector().detect(make_type("UserRepository"))
        assert [e.name for e in entities] == ["Database-UserRepository"]

    def test_multiple_detectors_fire(self, make_type):
        fact = make_type(
            "UserServiceController", annotations={"RestController": None}
        )
        entities = ExternalEntityDetector().detect(fact)
        assert [e.name for e in entities] == [
            "WebClient-UserServiceController",
            "Service-UserServiceController",
        ]

    def test_custom_detectors(self, make_type):
        detector = ExternalEntityDetector(detectors=[RepositoryDetector()])
        fact = make_type("PaymentRestClient")
        assert detector.detect(fact) == []
