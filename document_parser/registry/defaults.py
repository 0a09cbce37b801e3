"""
Built-in Registry Defaults.

Used when the JSON configuration sources are missing or malformed, so a
broken config file degrades to the stock document types instead of
stopping the process.
"""

from typing import Any, Dict, List

MB = 1024 * 1024

LOAN_OFFER_REQUIRED_FIELDS = ["anbieter", "kreditbetrag", "sollzinssatz", "effektivzinssatz"]

# Parameter → "max" (higher wins) or "min" (lower wins)
LOAN_OFFER_COMPARISON_RULES = {
    "kreditbetrag": "max",
    "auszahlungsbetrag": "max",
    "fixzinssatz": "min",
    "sollzinssatz": "min",
    "effektivzinssatz": "min",
    "bearbeitungsgebuehr": "min",
    "schaetzgebuehr": "min",
    "kontofuehrungsgebuehr": "min",
    "gesamtkosten": "min",
    "gesamtbetrag": "min",
    "monatsrate": "min",
}

DEFAULT_DOCUMENT_TYPES: List[Dict[str, Any]] = [
    {
        "id": "kaufvertrag",
        "name": "Kaufvertrag",
        "description": "Immobilien-Kaufvertrag Daten extrahieren",
        "supportedFormats": ["pdf", "docx"],
        "maxFileSize": 15 * MB,
        "promptTemplate": "kaufvertrag_prompt.txt",
        "requiredFields": ["buyer", "seller", "object", "price"],
    },
    {
        "id": "angebotsvergleich",
        "name": "Angebotsvergleich",
        "description": "Darlehensangebote vergleichen (2-3 Angebote)",
        "supportedFormats": ["pdf"],
        "maxFileSize": 15 * MB,
        "promptTemplate": "angebotsvergleich_prompt.txt",
        "comparisonPromptTemplate": "angebotsvergleich_comparison_prompt.txt",
        "minFiles": 2,
        "maxFiles": 3,
        "requiredFields": LOAN_OFFER_REQUIRED_FIELDS,
        "comparisonRules": LOAN_OFFER_COMPARISON_RULES,
    },
    {
        "id": "invoice",
        "name": "Rechnung",
        "description": "Rechnungsdaten extrahieren",
        "supportedFormats": ["pdf", "png", "jpg", "jpeg"],
        "maxFileSize": 10 * MB,
        "promptTemplate": "invoice_prompt.txt",
        "requiredFields": ["vendorName", "invoiceNumber", "invoiceDate", "totalAmount"],
    },
    {
        "id": "receipt",
        "name": "Kassenbon",
        "description": "Kassenbondaten extrahieren",
        "supportedFormats": ["pdf", "png", "jpg", "jpeg"],
        "maxFileSize": 5 * MB,
        "promptTemplate": "receipt_prompt.txt",
        "requiredFields": ["merchantName", "transactionDate", "totalAmount"],
    },
    {
        "id": "business_card",
        "name": "Visitenkarte",
        "description": "Kontaktdaten aus Visitenkarten extrahieren",
        "supportedFormats": ["png", "jpg", "jpeg"],
        "maxFileSize": 2 * MB,
        "promptTemplate": "business_card_prompt.txt",
        "requiredFields": ["name"],
    },
    {
        "id": "resume",
        "name": "Lebenslauf",
        "description": "Persönliche und berufliche Informationen aus Lebensläufen extrahieren",
        "supportedFormats": ["pdf", "docx"],
        "maxFileSize": 5 * MB,
        "promptTemplate": "resume_prompt.txt",
        "requiredFields": ["personalInfo"],
    },
    {
        "id": "haushaltsrechnung",
        "name": "Haushaltsrechnung",
        "description": "Bankkontoauszüge analysieren und Transaktionen kategorisieren",
        "supportedFormats": ["pdf"],
        "maxFileSize": 2 * MB,
        "promptTemplate": "haushaltsrechnung_prompt.txt",
    },
    {
        "id": "angebotserfassung",
        "name": "Angebotserfassung",
        "description": "Darlehensangebote erfassen und in Datenbank speichern (1-3 Angebote)",
        "supportedFormats": ["pdf"],
        "maxFileSize": 15 * MB,
        "promptTemplate": "angebotsvergleich_prompt.txt",
        "minFiles": 1,
        "maxFiles": 3,
        "requiredFields": LOAN_OFFER_REQUIRED_FIELDS,
    },
    {
        "id": "document_verification",
        "name": "Dokumenten-Verifizierung",
        "description": "Mehrere Dokumente verschiedener Typen verifizieren (Pass, ID-Karte, Kaufvertrag)",
        "supportedFormats": ["pdf", "png", "jpg", "jpeg"],
        "maxFileSize": 15 * MB,
        "promptTemplate": "",
        "minFiles": 1,
        "maxFiles": 10,
    },
]

DEFAULT_CHECKLISTS: Dict[str, Dict[str, Any]] = {
    "austrian_passport": {
        "name": "Österreichischer Reisepass",
        "items": [
            {"id": "document_type", "label": "Dokumenttyp",
             "description": "Das Dokument ist ein österreichischer Reisepass."},
            {"id": "full_name", "label": "Vollständiger Name",
             "description": "Nachname und Vorname(n) des Inhabers sind lesbar angegeben."},
            {"id": "date_of_birth", "label": "Geburtsdatum",
             "description": "Ein gültiges Geburtsdatum ist angegeben."},
            {"id": "passport_number", "label": "Passnummer",
             "description": "Eine Passnummer ist vorhanden."},
            {"id": "expiry_date", "label": "Gültigkeit",
             "description": "Das Ablaufdatum liegt in der Zukunft."},
            {"id": "machine_readable_zone", "label": "Maschinenlesbare Zone",
             "description": "Die MRZ ist vorhanden und konsistent mit den Personendaten."},
        ],
    },
    "austrian_id_card": {
        "name": "Österreichische ID-Karte",
        "items": [
            {"id": "document_type", "label": "Dokumenttyp",
             "description": "Das Dokument ist ein österreichischer Personalausweis."},
            {"id": "full_name", "label": "Vollständiger Name",
             "description": "Nachname und Vorname(n) des Inhabers sind lesbar angegeben."},
            {"id": "date_of_birth", "label": "Geburtsdatum",
             "description": "Ein gültiges Geburtsdatum ist angegeben."},
            {"id": "document_number", "label": "Dokumentennummer",
             "description": "Eine Dokumentennummer ist vorhanden."},
            {"id": "expiry_date", "label": "Gültigkeit",
             "description": "Das Ablaufdatum liegt in der Zukunft."},
        ],
    },
    "real_estate_contract": {
        "name": "Immobilien-Kaufvertrag",
        "items": [
            {"id": "parties_identified", "label": "Vertragsparteien",
             "description": "Käufer und Verkäufer sind namentlich genannt."},
            {"id": "property_described", "label": "Kaufobjekt",
             "description": "Die Liegenschaft ist eindeutig beschrieben."},
            {"id": "purchase_price", "label": "Kaufpreis",
             "description": "Ein Kaufpreis ist als Betrag angegeben."},
            {"id": "signatures", "label": "Unterschriften",
             "description": "Hinweise auf Unterzeichnung beider Parteien sind vorhanden."},
            {"id": "notarization", "label": "Beglaubigung",
             "description": "Eine notarielle Beglaubigung ist erwähnt."},
        ],
    },
}
