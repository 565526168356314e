"""Canned payloads served when a flow cannot produce model content.

Every entry point reads from :data:`FALLBACKS` through :func:`get_fallback`,
which hands out deep copies so callers may fill in or mutate their payload.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional, Tuple


ANALYSIS = "analysis"
ADAPTIVE_QUESTION = "adaptive_question"
DIAGNOSTIC = "diagnostic"
COACHING = "coaching"

DEFAULT_ADAPTIVE_STEP = 4


FALLBACKS: Dict[Tuple[str, Optional[int]], Dict[str, Any]] = {
    (ANALYSIS, None): {
        "overallScore": 18,
        "dimensionScores": {"clarity": 25, "emotional": 10, "credibility": 15, "cta": 20},
        "fatalErrors": [
            {
                "id": "no_pain_quantification",
                "title": "Fehlende Schmerzpunkt-Quantifizierung",
                "severity": "critical",
                "impactExplanation": "Investoren sehen keinen messbaren ROI. Ohne Zahlen bleibt das Problem abstrakt.",
                "fix": "Quantifiziere das Problem: Wer verliert wie viel Zeit oder Geld pro Monat?",
                "scientificBasis": "Kahneman (2011): quantifizierte Verluste wirken stärker als allgemeine Schmerzaussagen.",
                "costEstimateEUR": 47000,
            },
            {
                "id": "vague_solution",
                "title": "Unklarer Lösungsmechanismus",
                "severity": "critical",
                "impactExplanation": "Ohne erklärten Mechanismus ist die Lösung nicht glaubwürdig.",
                "fix": "Erkläre in einem Satz, wie deine Lösung das Problem konkret löst.",
                "scientificBasis": "Mechanismus-Erklärungen senken Skepsis bei Entscheidern deutlich.",
                "costEstimateEUR": 35000,
            },
            {
                "id": "zero_credibility_markers",
                "title": "Keine Glaubwürdigkeitssignale",
                "severity": "high",
                "impactExplanation": "Ohne Kundenzahlen oder Ergebnisse fehlt jede Vertrauensbasis.",
                "fix": "Nenne Anzahl der Kunden, Umsatz oder messbare Ergebnisse.",
                "scientificBasis": "Cialdini (2006): spezifische Zahlen und Social Proof erhöhen Vertrauen.",
                "costEstimateEUR": 28000,
            },
            {
                "id": "vague_cta",
                "title": "Unklarer Call-to-Action",
                "severity": "high",
                "impactExplanation": "Niemand weiß, was als Nächstes passieren soll.",
                "fix": "Definiere genau eine Aktion mit niedriger Hürde, z.B. einen 15-Minuten-Call.",
                "scientificBasis": "Schwartz (2004): eine einzige klare Option erhöht die Conversion.",
                "costEstimateEUR": 17000,
            },
        ],
        "strengths": [],
        "nextSteps": (
            "Quantifiziere zuerst das Problem mit konkreten Zahlen, erkläre dann den "
            "Mechanismus deiner Lösung und ende mit einem klaren Call-to-Action."
        ),
    },
    (ADAPTIVE_QUESTION, 4): {
        "question": "Wie würdest du das Hauptproblem beschreiben, das du löst?",
        "description": "Eine klare Problemstellung ist die Basis eines überzeugenden Pitches",
        "suggestedAnswers": [
            "Unternehmen verschwenden Zeit mit ineffizienten Prozessen",
            "Kunden haben Schwierigkeiten, die richtige Lösung zu finden",
            "Der Markt ist intransparent und schwer zu navigieren",
        ],
    },
    (ADAPTIVE_QUESTION, 5): {
        "question": "Was macht deine Lösung konkret?",
        "description": "Investoren müssen sofort verstehen, was du baust",
        "suggestedAnswers": [
            "Wir automatisieren manuelle Prozesse mit KI",
            "Wir bieten eine Plattform, die Komplexität reduziert",
            "Wir schaffen Transparenz durch Datenanalyse",
        ],
    },
    (ADAPTIVE_QUESTION, 6): {
        "question": "Welche messbaren Erfolge hast du bisher?",
        "description": "Traktion ist der beste Beweis für Product-Market Fit",
        "suggestedAnswers": [
            "Wir haben erste zahlende Kunden und positives Feedback",
            "Wir sind noch im MVP-Stadium mit Beta-Nutzern",
            "Wir wachsen 20%+ monatlich bei Umsatz oder Nutzerzahlen",
        ],
    },
    (ADAPTIVE_QUESTION, 7): {
        "question": "Wer sind deine Hauptwettbewerber?",
        "description": '"Keine Konkurrenz" ist nie die richtige Antwort',
        "suggestedAnswers": [
            "Etablierte Player mit komplexen und teuren Lösungen",
            "Indirekte Konkurrenz wie Excel oder manuelle Prozesse",
            "Wir sind die ersten, die dieses Problem so angehen",
        ],
    },
    (DIAGNOSTIC, None): {
        "criticalIssues": 4,
        "warningIssues": 2,
        "strongAreas": 1,
        "issues": [
            {
                "severity": "critical",
                "title": "Problemstellung ist vage",
                "description": "Du hast nicht klar definiert, wer dieses Problem hat und wie teuer es für sie ist.",
                "impact": "Investoren können keine Marktgröße berechnen",
                "workshopPhase": "Phase 2",
            },
            {
                "severity": "critical",
                "title": "Keine Marktvalidierung",
                "description": "Keine Kundeninterviews, keine LOIs, keine Beweise für Nachfrage.",
                "impact": "Ohne Beweise wird kein Investor investieren",
                "workshopPhase": "Phase 5",
            },
            {
                "severity": "critical",
                "title": "Schwaches Finanzmodell",
                "description": "Fehlend: CAC, LTV, Unit Economics, Payback Period.",
                "impact": "Unmöglich, Profitabilität zu prognostizieren",
                "workshopPhase": "Phase 8",
            },
            {
                "severity": "critical",
                "title": "Keine klare Differenzierung",
                "description": "Was macht dich 10x besser als Alternativen? Nicht klar.",
                "impact": "Warum sollte jemand wechseln?",
                "workshopPhase": "Phase 3",
            },
            {
                "severity": "warning",
                "title": "Marktgröße braucht Arbeit",
                "description": "Benötigt Bottom-up TAM/SAM/SOM mit Quellen.",
                "impact": "Investoren zweifeln an Skalierbarkeit",
                "workshopPhase": "Phase 4",
            },
            {
                "severity": "warning",
                "title": "Wettbewerbsanalyse oberflächlich",
                "description": "Zeige strategischen Vorteil und Barrieren.",
                "impact": "Angst vor Kopierung",
                "workshopPhase": "Phase 7",
            },
            {
                "severity": "good",
                "title": "Starke Team-Story",
                "description": "Domain-Expertise ist klar.",
                "impact": "Gibt Vertrauen",
                "workshopPhase": "-",
            },
        ],
    },
    (COACHING, None): {
        "error": "KI-Antwort fehlgeschlagen",
        "message": "Ich habe gerade Verbindungsprobleme. Bitte versuche es in einem Moment erneut.",
        "fallback": True,
    },
}


def get_fallback(flow: str, step: Optional[int] = None) -> Dict[str, Any]:
    key = (flow, step)
    if key not in FALLBACKS and flow == ADAPTIVE_QUESTION:
        key = (flow, DEFAULT_ADAPTIVE_STEP)
    if key not in FALLBACKS:
        raise KeyError(f"No fallback content for flow={flow!r} step={step!r}")
    return copy.deepcopy(FALLBACKS[key])
