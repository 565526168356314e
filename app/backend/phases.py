from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple


PHASE_STATUS_PREFILL = "<phase_status>\n<complete>"
FALLBACK_INSTRUCTIONS = "Führe eine systematische Befragung durch. Stelle genau eine Frage pro Antwort."
FALLBACK_COMPLETION_CRITERIA = "Phasen-Ziele erreicht"


@dataclass(frozen=True)
class Phase:
    id: int
    name: str
    instructions: str
    completion_criteria: str
    required_elements: FrozenSet[str] = field(default_factory=frozenset)
    curated: bool = True

    def sorted_elements(self) -> list[str]:
        return sorted(self.required_elements)


@dataclass(frozen=True)
class Criterion:
    id: str
    label: str
    weight: int = 0


@dataclass(frozen=True)
class PhaseRubric:
    phase_id: int
    name: str
    must_meet: Tuple[Criterion, ...]
    should_meet: Tuple[Criterion, ...]
    max_score: int = 100


def _phase(phase_id: int, name: str, instructions: str, criteria: str, elements: Tuple[str, ...]) -> Phase:
    return Phase(
        id=phase_id,
        name=name,
        instructions=instructions.strip(),
        completion_criteria=criteria,
        required_elements=frozenset(elements),
    )


PHASES: Dict[int, Phase] = {
    phase.id: phase
    for phase in (
        _phase(
            2,
            "Fatale Fehler Diagnose",
            """
Arbeite die Fehler aus der Pitch-Analyse systematisch ab, einen nach dem anderen.
Stelle pro Nachricht genau eine Frage und verlange Zahlen und konkrete Beispiele.
Gib klares Feedback ("Zu vage" oder "Stark") und zeige den Fortschritt ("Fehler 1 von 5 behoben").
Wenn ein Pitch-Kontext vorliegt, zitiere das Beweis-Zitat aus dem Original-Pitch.
""",
            "Alle fatalen Fehler behoben, jeweils mit Zahlen und Beispielen belegt",
            ("problem_clarity", "solution_differentiation", "market_validation"),
        ),
        _phase(
            3,
            "Problem-Befragung",
            """
Kläre das Problem Frage für Frage: Wer genau ist betroffen (Persona, nicht "Unternehmen")?
Was kostet das Problem in Euro oder Stunden? Was nutzen Betroffene heute?
Welche Beweise gibt es (Interviews, Daten)? Warum ist jetzt der richtige Zeitpunkt?
Bewerte jede Antwort, bevor du zur nächsten Frage gehst.
""",
            "Problem ist spezifisch, quantifiziert und mit Beweisen validiert",
            ("target_persona", "problem_cost", "validation_proof", "market_timing"),
        ),
        _phase(
            4,
            "Lösungsklarheit",
            """
Mache die Lösung kristallklar, eine Frage nach der anderen: Was macht sie konkret, in zwei bis drei Sätzen?
Besteht sie den Oma-Test? Was machen Kunden danach anders?
Warum ist sie zehnmal besser und nicht zehn Prozent? Was ist der unfaire Vorteil?
""",
            "Lösung ist klar, differenziert und nachweislich 10x besser",
            ("solution_clarity", "differentiation", "proof_of_concept", "ten_x_better"),
        ),
        _phase(
            5,
            "Marktchance",
            """
Baue die Marktgröße bottom-up auf: Anzahl Zielkunden, Umsatz pro Kunde und Jahr,
erreichbarer Anteil in drei Jahren, Markt-Timing. Akzeptiere keine vagen Schätzungen.
""",
            "TAM/SAM/SOM mit Bottom-up-Berechnung und begründetem Timing",
            ("target_customer_count", "revenue_per_customer", "market_timing", "tam_sam_som"),
        ),
        _phase(
            6,
            "Geschäftsmodell & Ökonomie",
            """
Validiere die Unit Economics Kennzahl für Kennzahl: CAC, LTV, LTV:CAC-Verhältnis (mindestens 3:1),
Payback-Periode in Monaten, Bruttomarge in Prozent. Schätzungen brauchen eine Begründung.
""",
            "LTV:CAC über 3:1 mit realistischen, verteidigbaren Zahlen",
            ("cac", "ltv", "ltv_cac_ratio", "payback_period", "gross_margin"),
        ),
        _phase(
            7,
            "Traktion & Validierung",
            """
Belege die Nachfrage mit echten Zahlen: MRR oder ARR, aktive Nutzer, Wachstum pro Monat, Retention.
Ohne Umsatz zählen Validierungssignale wie LOIs oder Pilotkunden.
""",
            "Messbares Wachstum oder starke Validierungssignale mit Zahlen",
            ("revenue_or_users", "growth_rate", "retention", "validation_signals"),
        ),
        _phase(
            8,
            "Team-Glaubwürdigkeit",
            """
Baue die Gründer-Story auf: relevante Erfahrung, persönlicher Bezug zum Problem,
Domain-Expertise und bisherige Erfolge. Verlange konkrete Beispiele.
""",
            "Überzeugende Gründer-Story mit Credentials und persönlichem Bezug",
            ("relevant_experience", "domain_expertise", "personal_connection", "track_record"),
        ),
        _phase(
            9,
            "Wettbewerbslandschaft",
            """
Identifiziere die echten Alternativen: Was nutzen Kunden heute, wer sind drei direkte Wettbewerber,
was ist der unfaire Vorteil, warum gewinnt das Team in drei Jahren? "Keine Konkurrenz" gibt es nicht.
""",
            "Ehrliche Wettbewerbsanalyse mit klarem, verteidigbarem Vorteil",
            ("status_quo", "competitors", "unfair_advantage", "why_you_win"),
        ),
        _phase(
            10,
            "Die Anfrage & Mittelverwendung",
            """
Präzisiere den Kapitalbedarf: Betrag, Verwendung in Prozent, erreichbare Meilensteine, Runway in Monaten.
"Es kommt darauf an" ist keine Antwort.
""",
            "Klare Anfrage mit detaillierter Mittelverwendung und Meilensteinen",
            ("amount", "use_of_funds", "milestones", "runway"),
        ),
        _phase(
            11,
            "Narrativer Fluss",
            """
Optimiere die Story-Architektur Element für Element: Eröffnungshaken in den ersten 30 Sekunden,
emotionaler Bogen, einprägsame Tagline, logischer Fluss von Problem über Lösung und Markt zum Team.
""",
            "Überzeugende Story mit starkem Hook und emotionalem Bogen",
            ("opening_hook", "emotional_arc", "tagline", "story_flow"),
        ),
        _phase(
            12,
            "Q&A Vorbereitung",
            """
Trainiere die härtesten Investorenfragen einzeln: Warum wird das nicht funktionieren? Warum du?
Warum jetzt? Was, wenn ein großer Wettbewerber das baut? Wie verdienst du Geld?
Bewerte jede Antwort und verbessere sie, bevor die nächste Frage kommt.
""",
            "Überzeugende Antworten auf mindestens fünf kritische Investorenfragen",
            ("objection_handling", "competitive_response", "risk_mitigation", "why_you", "why_now"),
        ),
        _phase(
            13,
            "Finale Überprüfung",
            """
Gehe alle zehn Pitch-Elemente einzeln durch (Problem, Lösung, Markt, Modell, Traktion, Team,
Wettbewerb, Anfrage, Story, Q&A), vergib je einen Score und benenne die verbleibenden Lücken.
""",
            "Gesamtscore über 70/100, alle kritischen Lücken adressiert",
            ("overall_score", "remaining_gaps", "readiness_assessment"),
        ),
    )
}


RUBRICS: Dict[int, PhaseRubric] = {
    2: PhaseRubric(
        phase_id=2,
        name="Fatale Fehler Diagnose",
        must_meet=(
            Criterion("persona_identified", 'Spezifische Persona identifiziert (nicht "Unternehmen" oder "Menschen")'),
            Criterion("problem_described", "Problem klar artikuliert"),
            Criterion("hook_present", "Hat einen Eröffnungshaken"),
        ),
        should_meet=(
            Criterion("problem_quantified", "Problem-Kosten mit Zahlen quantifiziert", 20),
            Criterion("alternative_mentioned", "Aktuelle Alternative erwähnt", 15),
            Criterion("specific_example", "Enthält ein spezifisches, lebendiges Beispiel", 15),
        ),
    ),
    3: PhaseRubric(
        phase_id=3,
        name="Problem-Befragung",
        must_meet=(
            Criterion("specific_persona", "Spezifische Persona mit demografischen Details"),
            Criterion("quantified_pain", "Problem in Euro, Zeit oder messbarer Metrik quantifiziert"),
            Criterion("current_alternative", "Heutige Alternative der Kunden identifiziert"),
        ),
        should_meet=(
            Criterion("market_timing", "Erklärt, warum jetzt (Market Timing)", 25),
            Criterion("validation_evidence", "Liefert Validierungs-Beweise (Interviews, Daten)", 25),
        ),
    ),
    4: PhaseRubric(
        phase_id=4,
        name="Lösungsklarheit",
        must_meet=(
            Criterion("solution_clear", "Lösung klar in 2-3 Sätzen erklärt"),
            Criterion("differentiation", "Klare Differenzierung von Alternativen"),
            Criterion("value_prop", "Einzigartiges Wertversprechen formuliert"),
        ),
        should_meet=(
            Criterion("ten_x_better", "10x (nicht 10%) Verbesserung gezeigt", 20),
            Criterion("feasibility", "Machbarkeit der Lösung erklärt", 15),
            Criterion("simple_explanation", "Ohne Jargon verständlich", 15),
        ),
    ),
}


def get_phase(phase_id: int) -> Phase:
    phase = PHASES.get(phase_id)
    if phase is not None:
        return phase
    return Phase(
        id=phase_id,
        name=f"Phase {phase_id}",
        instructions=FALLBACK_INSTRUCTIONS,
        completion_criteria=FALLBACK_COMPLETION_CRITERIA,
        required_elements=frozenset(),
        curated=False,
    )


def get_rubric(phase_id: int) -> Optional[PhaseRubric]:
    return RUBRICS.get(phase_id)


def prefill_for_phase(phase_id: int) -> Optional[str]:
    return PHASE_STATUS_PREFILL if phase_id in PHASES else None


def phase_catalogue() -> list[dict]:
    return [
        {
            "id": phase.id,
            "name": phase.name,
            "completion_criteria": phase.completion_criteria,
            "required_elements": phase.sorted_elements(),
        }
        for phase in sorted(PHASES.values(), key=lambda item: item.id)
    ]
