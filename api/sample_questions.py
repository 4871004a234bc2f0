"""
api/sample_questions.py — built-in question pool used when no hosted database is configured
"""

from licence_exam.models.question_model import Question


def _q(qid, language, text, options, correct, category):
    return Question(
        id=qid,
        language=language,
        question_text=text,
        options=options,
        correct_index=correct,
        category=category,
    )


SAMPLE_QUESTIONS = [
    # ── English ──────────────────────────────────────────────────────────────
    _q("en-001", "en", "What does a red traffic light mean?",
       ["Stop", "Go", "Slow down", "Turn left only"], 0, "signals"),
    _q("en-002", "en", "On which side of the road must vehicles be driven?",
       ["Right", "Left", "Either side", "Centre"], 1, "rules"),
    _q("en-003", "en", "What is the minimum safe following distance in good conditions?",
       ["1 second", "2 seconds", "3 seconds", "5 seconds"], 2, "safety"),
    _q("en-004", "en", "A triangular sign with a red border is usually a:",
       ["Mandatory sign", "Warning sign", "Information sign", "Parking sign"], 1, "signs"),
    _q("en-005", "en", "When may you overtake another vehicle on the left?",
       ["Never", "When it is turning right", "On a hill", "At a pedestrian crossing"], 1, "rules"),
    _q("en-006", "en", "What should you do at a zebra crossing when a pedestrian is waiting?",
       ["Sound the horn", "Speed up", "Stop and let them cross", "Flash headlights"], 2, "safety"),
    _q("en-007", "en", "A flashing amber signal means:",
       ["Stop", "Proceed with caution", "Road closed", "Turn back"], 1, "signals"),
    _q("en-008", "en", "What is the legal blood alcohol limit for drivers?",
       ["0.08%", "0.05%", "0.02%", "Zero"], 3, "rules"),
    _q("en-009", "en", "Who has priority at an uncontrolled junction?",
       ["Vehicle on the right", "Faster vehicle", "Larger vehicle", "Vehicle on the left"], 0, "rules"),
    _q("en-010", "en", "When must headlights be used?",
       ["Only on highways", "From sunset to sunrise and in poor visibility",
        "Only in rain", "Only in tunnels"], 1, "safety"),
    _q("en-011", "en", "A blue circular sign generally gives:",
       ["A warning", "A prohibition", "A positive instruction", "Directions"], 2, "signs"),
    _q("en-012", "en", "Before changing lanes you should:",
       ["Brake hard", "Check mirrors and blind spot, then signal",
        "Sound the horn", "Switch on hazard lights"], 1, "safety"),
    # ── Nepali ───────────────────────────────────────────────────────────────
    _q("ne-001", "ne", "रातो ट्राफिक बत्तीको अर्थ के हो?",
       ["रोक्नुहोस्", "जानुहोस्", "बिस्तारै", "बायाँ मात्र"], 0, "signals"),
    _q("ne-002", "ne", "सडकको कुन छेउबाट सवारी चलाउनुपर्छ?",
       ["दायाँ", "बायाँ", "जुनसुकै", "बीचमा"], 1, "rules"),
    _q("ne-003", "ne", "जेब्रा क्रसिङमा पैदलयात्री पर्खिरहेको बेला के गर्नुपर्छ?",
       ["हर्न बजाउने", "गति बढाउने", "रोकेर पार गर्न दिने", "बत्ती बाल्ने"], 2, "safety"),
    _q("ne-004", "ne", "रातो किनारा भएको त्रिकोण चिन्ह प्रायः के हो?",
       ["अनिवार्य चिन्ह", "चेतावनी चिन्ह", "सूचना चिन्ह", "पार्किङ चिन्ह"], 1, "signs"),
    _q("ne-005", "ne", "लेन परिवर्तन गर्नुअघि के गर्नुपर्छ?",
       ["जोडले ब्रेक", "ऐना र ब्लाइन्ड स्पट हेरी संकेत दिने", "हर्न बजाउने", "खतरा बत्ती बाल्ने"], 1, "safety"),
    _q("ne-006", "ne", "पहेँलो बत्ती झिम्किँदा के बुझिन्छ?",
       ["रोक्नुहोस्", "सावधानीपूर्वक अगाडि बढ्नुहोस्", "बाटो बन्द", "फर्कनुहोस्"], 1, "signals"),
]
