ANALYSIS_VERSION = "analysis_v3"

ANALYSIS_PREFILL = '{\n  "overallScore":'

SYSTEM_CONTEXT = """<system_context>
Du bist PitchPerfect AI, ein Pitch-Optimierungssystem für das deutsche Startup-Ökosystem.

Wissenschaftlicher Rahmen:
1. Neurowissenschaft: emotionale Aktivierung, Gedächtniskodierung
2. Verhaltensökonomie: Verlustaversion, Framing, Anker
3. Kognitive Psychologie: kognitive Last, Dual-Process-Theorie
4. Sozialpsychologie: Autorität, Social Proof, Commitment
5. Kommunikationswissenschaft: Narrativstruktur, Klarheit
6. Sales-Strategie: Wertversprechen, ROI-Fokus

Analyse-Standards:
- Evidenzbasiert: jede Aussage mit wörtlichem Zitat aus dem Pitch belegt
- Umsetzbar: jeder Fehler mit konkretem Fix und Beispiel
- Quantifiziert: Dimensionen unabhängig voneinander 0-100 bewertet
- Deutscher Markt: Daten vor Story
</system_context>"""

FEW_SHOT_EXAMPLES = """<examples>
<example type="weak_pitch">
<pitch_text>Wir helfen Startups ihre Pitches zu verbessern. Unsere KI-Lösung macht Pitches besser. Wir haben schon Kunden. Kontaktiere uns für mehr Infos.</pitch_text>
<analysis>
{
  "overallScore": 18,
  "dimensions": {
    "clarity": {"score": 25, "reasoning": "'Startups' ist keine Zielgruppe, 'besser machen' ist kein Mechanismus."},
    "emotional": {"score": 10, "reasoning": "Kein Loss Framing, keine Quantifizierung, keine Dringlichkeit."},
    "credibility": {"score": 15, "reasoning": "Keine Zahlen, kein Social Proof."},
    "cta": {"score": 20, "reasoning": "'Kontaktiere uns' ist vage und hat eine hohe Hürde."}
  },
  "fatalErrors": [
    {
      "id": "no_pain_quantification",
      "title": "Fehlende Schmerzpunkt-Quantifizierung",
      "severity": "critical",
      "evidence": "helfen Startups ihre Pitches zu verbessern",
      "impact": "Investoren sehen keinen messbaren ROI.",
      "fix": "Quantifiziere das Problem: 'Deutsche SaaS-Gründer verlieren durchschnittlich 70 Tage pro Deal durch inkonsistente Pitches.'",
      "scientificBasis": "Kahneman (2011): quantifizierte Verluste wirken stärker als allgemeine Schmerzaussagen.",
      "costEstimate": 47000
    },
    {
      "id": "vague_solution",
      "title": "Unklarer Lösungsmechanismus",
      "severity": "critical",
      "evidence": "Unsere KI-Lösung macht Pitches besser",
      "impact": "Ohne Mechanismus ist die Lösung nicht glaubwürdig.",
      "fix": "Erkläre das Wie: welche Analyse, welche Dimensionen, welches Ergebnis.",
      "scientificBasis": "Mechanismus-Erklärungen senken Skepsis deutlich.",
      "costEstimate": 35000
    },
    {
      "id": "zero_credibility_markers",
      "title": "Keine Glaubwürdigkeitssignale",
      "severity": "high",
      "evidence": "Wir haben schon Kunden",
      "impact": "Wie viele Kunden? Ohne Zahlen kein Vertrauen.",
      "fix": "Nenne Anzahl und Ergebnisse: '247 Gründer nutzen uns, darunter 3 Series-A-Erfolge.'",
      "scientificBasis": "Cialdini (2006): spezifische Zahlen erhöhen Vertrauen.",
      "costEstimate": 28000
    },
    {
      "id": "vague_cta",
      "title": "Unklarer Call-to-Action",
      "severity": "high",
      "evidence": "Kontaktiere uns für mehr Infos",
      "impact": "Zu viel kognitive Last, niemand weiß, was als Nächstes passiert.",
      "fix": "Definiere eine Aktion: 'Buche jetzt deinen 15-Minuten-Demo-Call.'",
      "scientificBasis": "Schwartz (2004): eine einzige Option erhöht die Conversion.",
      "costEstimate": 17000
    }
  ],
  "strengths": [],
  "nextSteps": "Quantifiziere zuerst das Problem, erkläre dann den Mechanismus und ergänze Social Proof."
}
</analysis>
</example>

<example type="strong_pitch">
<pitch_text>Deutsche SaaS-Gründer verlieren durchschnittlich 70 Tage pro Deal durch inkonsistente Pitches, 40% niedrigere Erfolgsrate als US-Gründer und 85.000 EUR Opportunitätskosten. PitchPerfect bewertet Pitches mit 9 wissenschaftlichen Frameworks in 4 Dimensionen. Bereits 247 Nutzer, darunter 3 Series-A-Erfolge mit 12 Mio. EUR. Buche jetzt deine kostenlose 15-Minuten-Analyse: pitchperfect.ai/demo</pitch_text>
<analysis>
{
  "overallScore": 82,
  "dimensions": {
    "clarity": {"score": 85, "reasoning": "Spezifische Zielgruppe, klarer Mechanismus."},
    "emotional": {"score": 78, "reasoning": "Starkes Loss Framing mit Vergleichsanker."},
    "credibility": {"score": 80, "reasoning": "Social Proof und Ergebnisse mit Zahlen."},
    "cta": {"score": 85, "reasoning": "Eine Aktion, niedrige Hürde, direkter Link."}
  },
  "fatalErrors": [],
  "strengths": [
    "Durchgehende Quantifizierung: 70 Tage, 40%, 85.000 EUR, 247 Nutzer",
    "Vergleichsanker US-Gründer schafft Dringlichkeit",
    "CTA ohne Reibung: kostenlos, 15 Minuten, direkter Link"
  ],
  "nextSteps": "Der Pitch ist bereit für Investoren. Arbeite an Delivery und Q&A."
}
</analysis>
</example>
</examples>"""

TASK_PROMPT_TEMPLATE = """<task>
Analysiere diesen Pitch eines deutschen Gründers (Stage: {stage}).

<pitch_text>
{pitch_text}
</pitch_text>

<pitch_context>
Zweck: {purpose}
Stage: {stage}
Zielpublikum: {audience}
{extra_context}
</pitch_context>

<analysis_instructions>
1. Bewerte die Dimensionen clarity, emotional, credibility und cta jeweils unabhängig von 0-100. Die Beispiele oben sind Anker: schwacher Pitch 18/100, starker Pitch 82/100.
2. Identifiziere 3-5 fatale Fehler, die zur sofortigen Ablehnung führen. Für jeden Fehler:
   - "evidence": wörtliches Zitat aus dem Pitch, unverändert
   - "impact": warum er aus Investorensicht fatal ist, in einfacher Sprache
   - "fix": konkrete Verbesserung mit Beispiel
   - "scientificBasis": Forschungsgrundlage
   - "costEstimate": geschätzte Kosten des Fehlers in Euro als Zahl
3. Gib das JSON exakt im Format der Beispiele aus. Alle Texte auf Deutsch.
</analysis_instructions>

Gib NUR das JSON zurück, ohne Markdown und ohne Erklärung.
</task>"""
