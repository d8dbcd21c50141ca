"""
Pytest configuration.

Registers the integration marker and the --run-integration option, and
provides the sample documents shared by several test modules.
"""

import pytest


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against a real AI extraction provider"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring a real AI provider"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


ENGLISH_INVOICE = """Invoice #INV-2024-001
Vendor: Acme Corp Address: 1 Main St
Issue Date: 2024-01-15
Due Date: 14/02/2024
2 Widget assembly 150.00 USD
1 Installation service 200.00 USD
Subtotal: 500.00 USD
Tax: 100.00 USD
Total: 600.00 USD
"""

POLISH_INVOICE = """FAKTURA VAT nr FV/2024/03/015
SPRZEDAWCA: Kowalski Budownictwo Sp. z o.o. ul. Długa 5, 00-001 Warszawa
NIP: 123-456-78-90
Email: biuro@kowalski.pl
Tel: +48 22 123 45 67
DATA WYSTAWIENIA: 05-03-2024
TERMIN PŁATNOŚCI: 19-03-2024
Wartość netto: 1 000,00 PLN
Kwota VAT: 230,00 PLN
RAZEM DO ZAPŁATY: 1 230,00 PLN
"""


@pytest.fixture
def english_invoice():
    return ENGLISH_INVOICE


@pytest.fixture
def polish_invoice():
    return POLISH_INVOICE
