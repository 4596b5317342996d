from tempo.core.domain import Interest

FITNESS_EXAMPLES = """
<examples interest="fitness">
Example input: 7.2h sleep, HRV 72ms (7-day avg 68ms), 9,800 steps yesterday, clear, 14C.
Example output:
{"greeting": "Good morning, Ken", "condition": {"summary": "Recovery looks strong today.", "detail": "HRV is above your weekly average and deep sleep was long, so your body is ready for a harder session."}, "actionSuggestions": [{"icon": "fitness", "title": "Train before noon", "detail": "Your recovery markers support a higher-intensity session."}], "closingMessage": "Enjoy the energy today.", "dailyTry": {"title": "Add a drop set", "summary": "Finish your last set with a lighter weight.", "detail": "After the final working set, drop the weight by 20-30% and continue with good form."}}
</examples>
""".strip()

BEAUTY_EXAMPLES = """
<examples interest="beauty">
Example input: 6.1h sleep, humidity 28%, UV index 6.
Example output:
{"greeting": "Good morning, Aya", "condition": {"summary": "Skin may feel dry today.", "detail": "Short sleep and low humidity both pull moisture from the skin, and UV is high this afternoon."}, "actionSuggestions": [{"icon": "beauty", "title": "Layer moisture", "detail": "Apply a light moisturizer twice today."}], "closingMessage": "Small care adds up.", "dailyTry": {"title": "Warm water first", "summary": "Start the day with a glass of warm water.", "detail": "Drink a glass of warm water within 30 minutes of waking to support hydration."}}
</examples>
""".strip()

MENTAL_EXAMPLES = """
<examples interest="mental_health">
Example input: 3 awakenings, HRV 41ms (7-day avg 52ms), pressure falling.
Example output:
{"greeting": "Good morning, Yui", "condition": {"summary": "Your nervous system could use a gentle day.", "detail": "HRV is below your usual range and sleep was broken; falling pressure can add to heaviness."}, "actionSuggestions": [{"icon": "mental", "title": "Slow breathing break", "detail": "Try 4-7-8 breathing for three rounds at lunch."}], "closingMessage": "Go easy on yourself today.", "dailyTry": {"title": "Three-line journal", "summary": "Write three short lines before bed.", "detail": "Note one thing that went well, one thing you felt, and one thing you will let go of."}}
</examples>
""".strip()

WORK_EXAMPLES = """
<examples interest="work_performance">
Example input: 6.8h sleep, resting HR 58, 4,200 steps yesterday, Monday.
Example output:
{"greeting": "Good morning, Taro", "condition": {"summary": "Steady energy, low movement yesterday.", "detail": "Sleep was adequate but activity was low, so focus may dip mid-afternoon."}, "actionSuggestions": [{"icon": "work", "title": "Deep work first", "detail": "Schedule your hardest task in the first two hours."}], "closingMessage": "A focused start makes the week lighter.", "dailyTry": {"title": "Standing meetings", "summary": "Take one meeting on your feet.", "detail": "Stand or walk during one call today to lift alertness without extra coffee."}}
</examples>
""".strip()

NUTRITION_EXAMPLES = """
<examples interest="nutrition">
Example input: 7.0h sleep, 11,200 steps yesterday, 31C, humidity 75%.
Example output:
{"greeting": "Good morning, Mei", "condition": {"summary": "Active yesterday and a hot day ahead.", "detail": "High step count plus heat means higher fluid and electrolyte needs today."}, "actionSuggestions": [{"icon": "nutrition", "title": "Salted breakfast", "detail": "Add miso soup or a pinch of salt to breakfast."}], "closingMessage": "Fuel well and stay cool.", "dailyTry": {"title": "Protein at breakfast", "summary": "Aim for 20g of protein in the morning.", "detail": "Add eggs, yogurt or tofu to breakfast to steady energy through the late morning."}}
</examples>
""".strip()

SLEEP_EXAMPLES = """
<examples interest="sleep">
Example input: bedtime 01:20, 5.9h sleep, deep sleep 0.6h.
Example output:
{"greeting": "Good morning, Sora", "condition": {"summary": "Short night with little deep sleep.", "detail": "A late bedtime compressed deep sleep, so expect lower focus after lunch."}, "actionSuggestions": [{"icon": "sleep", "title": "Short nap window", "detail": "If needed, nap for 20 minutes before 15:00."}], "closingMessage": "Tonight is a chance to reset.", "dailyTry": {"title": "Lights down at 22:30", "summary": "Dim the lights one hour before bed.", "detail": "Switch to warm, low light at 22:30 and keep screens out of the bedroom."}}
</examples>
""".strip()

EXAMPLES_BY_INTEREST: dict[Interest, str] = {
    Interest.fitness: FITNESS_EXAMPLES,
    Interest.beauty: BEAUTY_EXAMPLES,
    Interest.mental_health: MENTAL_EXAMPLES,
    Interest.work_performance: WORK_EXAMPLES,
    Interest.nutrition: NUTRITION_EXAMPLES,
    Interest.sleep: SLEEP_EXAMPLES,
}

DEFAULT_INTEREST = Interest.fitness
