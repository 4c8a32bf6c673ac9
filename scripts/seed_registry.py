#!/usr/bin/env python3
"""
Script to seed the credential registry with sample doctors and organizations.

Requires FIREBASE_CREDENTIALS_PATH in the environment (or .env).

Usage: python scripts/seed_registry.py
"""
import sys

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from healthvault.auth.exceptions import RegistryUnavailableException
from healthvault.core.firebase import get_firestore_client
from healthvault.verification.registry import CredentialRegistry
from healthvault.verification.schemas import EmployeeRecord

SAMPLE_DOCTORS = [
    ("MH12345", "Dr. John Smith", "Medical Council of India", "Cardiologist"),
    ("DL67890", "Dr. Sarah Johnson", "Medical Council of India", "Pediatrician"),
    ("MH54321", "Dr. Rajesh Kumar", "Medical Council of India", "General Physician"),
    ("KA11111", "Dr. Priya Sharma", "Medical Council of India", "Dermatologist"),
    ("TN22222", "Dr. Amit Patel", "Medical Council of India", "Orthopedic Surgeon"),
]

SAMPLE_ORGANIZATIONS = [
    {
        "id": "ORG001",
        "name": "City Hospital",
        "email_domains": ["cityhospital.com", "ch.org"],
        "employees": [
            ("EMP001", "staff@cityhospital.com", "Jane Doe", "Reception"),
            ("EMP002", "admin@cityhospital.com", "John Admin", "Administration"),
            ("EMP003", "nurse@cityhospital.com", "Mary Wilson", "Nursing"),
        ],
    },
    {
        "id": "ORG002",
        "name": "Metro Clinic",
        "email_domains": ["metroclinic.com", "mc.org"],
        "employees": [
            ("MC001", "receptionist@metroclinic.com", "Alice Brown", "Reception"),
            ("MC002", "manager@metroclinic.com", "Bob Manager", "Management"),
        ],
    },
    {
        "id": "ORG003",
        "name": "Apollo Health Center",
        "email_domains": ["apollohealth.com", "ahc.org"],
        "employees": [
            ("AHC001", "staff@apollohealth.com", "David Lee", "General Staff"),
            ("AHC002", "coordinator@apollohealth.com", "Emma Davis", "Coordination"),
        ],
    },
]


def seed_registry(registry: CredentialRegistry) -> None:
    """Write every sample doctor and organization to the registry."""
    print("📋 Adding verified doctors...")
    for license_number, full_name, council, specialization in SAMPLE_DOCTORS:
        registry.add_doctor(license_number, full_name, council, specialization)
        print(f"✅ Added: {full_name} ({license_number})")

    print("\n🏥 Adding verified organizations...")
    for org in SAMPLE_ORGANIZATIONS:
        employees = [
            EmployeeRecord(employee_id=employee_id, email=email, name=name, department=department)
            for employee_id, email, name, department in org["employees"]
        ]
        registry.add_organization(org["id"], org["name"], org["email_domains"], employees)
        print(f"✅ Added: {org['name']} ({org['id']}) with {len(employees)} employees")


def main() -> int:
    client = get_firestore_client()
    if client is None:
        print("❌ Firebase is not configured")
        print("💡 Set FIREBASE_CREDENTIALS_PATH in your .env file")
        return 1
    try:
        seed_registry(CredentialRegistry(client))
    except RegistryUnavailableException as e:
        print(f"❌ Seeding stopped: {e.detail}")
        return 1
    print("\n🎉 Credential registry seeded.")
    print("💡 Test with: MH12345 / Dr. John Smith / Medical Council of India")
    print("💡 Test with: ORG001 / EMP001 / staff@cityhospital.com")
    return 0


if __name__ == "__main__":
    sys.exit(main())
