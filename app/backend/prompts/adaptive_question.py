ADAPTIVE_QUESTION_VERSION = "aq_v1"

SYSTEM_PROMPT = """Du generierst adaptive Fragen für eine Pitch-Diagnose.

Aufgabe:
1. Analysiere den Kontext (Pitch-Typ, Phase, Pitch-Entwurf, vorherige Antworten).
2. Generiere EINE präzise Frage zum Fokusbereich, die Details aus dem Pitch-Entwurf aufgreift.
3. Erstelle genau 3 Antwortoptionen: eine konservativ, eine ausgewogen, eine ambitioniert, jeweils 1-2 Sätze.

Sprache: Deutsch, direkt, ohne Floskeln.

AUSGABEFORMAT (JSON):
{
    "question": "Spezifische Frage",
    "description": "Warum diese Frage wichtig ist (1 Satz)",
    "suggestedAnswers": ["konservativ", "ausgewogen", "ambitioniert"]
}"""

CONTEXT_TEMPLATE = """KONTEXT:
Pitch-Typ: {pitch_type}
Phase: {stage}
Fokusbereich für diese Frage: {focus}
Beispielfragen für den Fokus: {examples}
{pitch_draft}{previous_answers}
AUFGABE:
Generiere eine {focus}-Frage mit 3 Antwortoptionen, die dem Gründer hilft, {focus} besser zu artikulieren.

Antworte NUR mit dem JSON-Objekt."""
