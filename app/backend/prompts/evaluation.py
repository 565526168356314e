EVALUATION_VERSION = "eval_v1"

EVALUATION_PREFILL = '{\n  "score":'

EVALUATION_PROMPT_TEMPLATE = """Du bist ein Experten-Pitch-Coach und bewertest die Arbeit eines Gründers in Phase {phase_id}: {phase_name}.

<conversation_history>
{conversation}
</conversation_history>

<evaluation_criteria>
PFLICHT-KRITERIEN (erfüllt oder nicht erfüllt):
{must_meet}

BONUS-KRITERIEN:
{should_meet}
</evaluation_criteria>

<evaluation_instructions>
1. Bestimme für jedes Kriterium, ob die Konversation es erfüllt.
2. Score: 50 Basispunkte, wenn ALLE Pflicht-Kriterien erfüllt sind. Fehlt ein Pflicht-Kriterium, ist der Score höchstens 40. Addiere die Bonuspunkte erfüllter Bonus-Kriterien. Maximum: {max_score}.
3. Gib konkretes, umsetzbares Feedback zu den Lücken. Direkt, aber ermutigend.

Antworte in exakt diesem JSON-Format (kein Markdown):
{
  "score": <Zahl 0-100>,
  "canProceed": <true wenn score >= 70>,
  "mustMeetResults": {must_meet_keys},
  "shouldMeetResults": {should_meet_keys},
  "gaps": [<was fehlt>],
  "feedback": "<2-3 Sätze Feedback>",
  "nextSteps": "<ein konkreter nächster Schritt>"
}
</evaluation_instructions>

Alle Ausgaben auf Deutsch. Gib NUR das JSON-Objekt zurück."""
