# runcoach/utils/prompts.py

COACH_SYSTEM_PROMPT = """
You are an expert running coach who creates detailed, personalized training plans.
Your mission is to get the runner in the best shape possible to achieve their goal.
Be specific about pacing, distances, and progression.
"""

DAY_DETAILS_SYSTEM_PROMPT = """
You are an expert running coach who provides detailed, actionable training instructions.
Be specific and practical.
"""

RUNNER_PROFILE_TEMPLATE = """RUNNER PROFILE
- Goal: {goal}
- Race: {race_name} ({race_distance_km} km, {race_surface})
- Race date: {race_date} ({days_to_race} days from today)
- Age: {age}
- Gender: {gender}
- Height: {height} cm
- Weight: {weight_kg} kg
- Training history: {training_history}
- Years running: {experience_years}
- Current weekly mileage: {current_weekly_mileage} km
- Longest comfortable run: {longest_run_km} km
- Days available per week: {days_per_week}
- Goal pace: {goal_pace_per_km} per km
- Recent race results: {race_results}
- Past injuries: {injuries}
- Strength training habits: {strength_notes}
- Elevation preference/terrain: {elevation_context}
- Further notes: {further_notes}"""

COACH_GENERATE_PLAN_PROMPT = """
Create a day-by-day training plan for the runner below, from today ({today}) until race day ({race_date}).

{runner_profile}

Write the first line exactly as:
#PLAN-FORMAT: pipe-extended/1

Then write ONE line per day, in date order, with exactly seven fields separated by "|":
DATE|SESSION_TYPE|MILEAGE_BREAKDOWN|PACE_TARGETS|DISTANCE_KM|AVG_PACE|MOVING_TIME

- DATE: YYYY-MM-DD
- SESSION_TYPE: Rest, Easy Run, Recovery Run, Tempo Run, Intervals, Long Run, Race, ...
- MILEAGE_BREAKDOWN: e.g. "2km warm-up, 5km @ tempo, 1km cool-down"
- PACE_TARGETS: e.g. "Easy 5:45-6:00/km, tempo 4:50/km"
- DISTANCE_KM: a number, 0 on rest days
- AVG_PACE: min/km as M:SS, or N/A on rest days
- MOVING_TIME: H:MM:SS or MM:SS, or N/A on rest days

Never use "|" inside a field. Use N/A for anything that does not apply.
Do not add any other text, headings or commentary.
"""

DAY_DETAILS_PROMPT = """
Based on the following context, generate detailed instructions for the training day below.

{runner_profile}

DAY CONTEXT
- Date: {date}
- Training session: {session_type}
- Estimated distance: {distance} km
- Estimated moving time: {moving_time}
- Mileage breakdown: {mileage_breakdown}
- Pace targets: {pace_targets}
- Session load: {session_load}
- Purpose: {purpose}

Reply with one line per field, using exactly these uppercase labels:
MILEAGE_BREAKDOWN: warm-up, main set, cooldown
PACE_TARGETS: pace targets per segment
HEART_RATE_ZONES: target zones
PURPOSE: what this session builds
SESSION_LOAD: Low, Medium or High
NOTES: technique focus and cues
WHAT_TO_EAT_DRINK: before and during the session
ADDITIONAL_TRAINING: strength or mobility work
RECOVERY_TRAINING: foam rolling, mobility, sleep
ESTIMATED_ELEVATION_GAIN_M: whole number
ESTIMATED_AVG_POWER_W: whole number
ESTIMATED_CADENCE_SPM: whole number
ESTIMATED_CALORIES: whole number
DAILY_NUTRITION_ADVICE: meals and macros for the day

Keep each value on a single line. Keep it concise but actionable, no unnecessary explanations.
"""
