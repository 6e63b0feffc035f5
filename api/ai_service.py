import datetime
import json
import logging
import re

from django.conf import settings
from openai import OpenAI, OpenAIError

from .errors import AIServiceError

logger = logging.getLogger(__name__)

MOOD_SCORES = {
    'very_sad': 1,
    'sad': 2,
    'neutral': 3,
    'happy': 4,
    'very_happy': 5,
}

COUNSELOR_INSTRUCTION = (
    "You are a supportive, empathetic, and non-judgmental AI wellness counselor. "
    "Your purpose is to listen, offer gentle guidance, encourage self-reflection, and provide "
    "general coping strategies. You should never diagnose, prescribe, or give medical advice. "
    "Keep responses concise and focused on well-being. Acknowledge the user's last message before responding."
)

QUESTION_TYPES = ('multiple_choice', 'true_false', 'short_answer')


def _client():
    if not settings.OPENAI_API_KEY:
        raise AIServiceError("OPENAI_API_KEY is not set. Cannot connect to AI service.", 503)
    return OpenAI(api_key=settings.OPENAI_API_KEY, base_url=settings.OPENAI_BASE_URL)


def get_chat_completion(messages, temperature=0.7, top_p=1, model=None):
    """Single chat-completion call; returns the reply text."""
    model = model or settings.OPENAI_CHAT_MODEL
    logger.info("Calling chat completion (%s, %d messages)", model, len(messages))
    try:
        completion = _client().chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            top_p=top_p,
        )
    except OpenAIError as e:
        logger.error("AI API error: %s", e)
        raise AIServiceError(f"AI API Error: {e}")

    if not completion.choices or completion.choices[0].message is None:
        logger.error("Unexpected AI API response structure: %s", completion)
        raise AIServiceError("AI API returned an unexpected response structure.")
    content = completion.choices[0].message.content or ""
    logger.info("AI success, reply length %d", len(content))
    return content


def generate_image(prompt, size="1024x1024"):
    """Image-generation call; returns the hosted image URL."""
    logger.info("Calling image generation (%s)", settings.OPENAI_IMAGE_MODEL)
    try:
        result = _client().images.generate(
            model=settings.OPENAI_IMAGE_MODEL,
            prompt=prompt,
            size=size,
            n=1,
        )
    except OpenAIError as e:
        logger.error("Image API error: %s", e)
        raise AIServiceError(f"Image API Error: {e}")
    if not result.data or not result.data[0].url:
        raise AIServiceError("Image API returned no image.")
    return result.data[0].url


def parse_json_reply(content):
    """
    Parse JSON out of a model reply.

    Models wrap JSON in Markdown fences, leave raw control characters inside strings
    and add trailing commas; all three are cleaned before parsing. As a last resort
    the outermost {...} or [...] span is parsed.
    """
    if content is None:
        raise AIServiceError("AI returned an empty response.")
    if "```json" in content:
        content = content.split("```json")[1].split("```")[0]
    elif "```" in content:
        content = content.split("```")[1].split("```")[0]

    content = content.strip()
    content = re.sub(r'[\x00-\x1F\x7F]', '', content)
    content = re.sub(r',\s*([\]}])', r'\1', content)

    try:
        return json.loads(content)
    except json.JSONDecodeError as je:
        logger.warning("JSON parsing failed: %s", je)

    for open_char, close_char in (('{', '}'), ('[', ']')):
        start = content.find(open_char)
        end = content.rfind(close_char)
        if start != -1 and end > start:
            try:
                return json.loads(content[start:end + 1])
            except json.JSONDecodeError:
                continue
    logger.error("Unparseable AI content: %s", content[:500])
    raise AIServiceError("Failed to parse AI response as JSON.")


def ask_for_json(system_prompt, user_prompt, temperature=0.7):
    system_prompt += "\n\nIMPORTANT: Return ONLY valid JSON."
    reply = get_chat_completion(
        [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        temperature=temperature,
    )
    return parse_json_reply(reply)


# --- Wellness ---

def weekly_average_mood_score(entries, today=None):
    """Average mood score (1-5) over the last 7 days, one decimal; 0 when there is nothing to average."""
    today = today or datetime.date.today()
    # Today plus the six days before it
    week_start = today - datetime.timedelta(days=6)
    scores = []
    for entry in entries:
        try:
            entry_date = datetime.date.fromisoformat(entry.date)
        except (TypeError, ValueError):
            continue
        if entry_date >= week_start:
            scores.append(MOOD_SCORES.get(entry.mood, 0))
    if not scores:
        return 0
    return round(sum(scores) / len(scores), 1)


def wellness_insight(user_id, entries, todays_entry, weekly_average):
    recent = entries[:10]
    history = "\n".join(
        f"- Date: {e.date}, Mood: {e.mood}, Notes: {e.notes or 'N/A'}" for e in recent
    )
    todays = f"{todays_entry.mood} (Notes: {todays_entry.notes or 'N/A'})" if todays_entry else "Not set"
    system_prompt = f"""You are an empathetic and insightful AI assistant specializing in mental wellness.
Analyze the following mood data for user ID {user_id}:
Today's Mood: {todays}
Weekly Average Mood Score: {weekly_average}
Recent Mood History ({len(recent)} entries):
{history}

Provide a concise, empathetic wellness insight or observation based on this data. Highlight any notable
trends and offer a general, encouraging message. Keep it under 200 words."""
    return get_chat_completion([{"role": "system", "content": system_prompt}], temperature=0.7)


def counselor_reply(chat_history):
    messages = [{"role": "system", "content": COUNSELOR_INSTRUCTION}] + [
        {"role": m["role"], "content": m["content"]} for m in chat_history
    ]
    return get_chat_completion(messages, temperature=0.8)


# --- Educator content tools ---

def generate_course_outline(topic, difficulty="beginner", duration=None, audience=None,
                            style_tone=None, additional_context=None):
    system_prompt = """
    You are a senior curriculum designer. Build a complete course outline.

    Output Format (JSON):
    {
        "title": "Course title",
        "description": "One paragraph course summary",
        "chapters": [
            {"title": "Chapter title", "lessons": ["Lesson title", "Lesson title"]}
        ]
    }

    Rules:
    - Chapters progress logically from fundamentals to advanced material.
    - Each chapter has 3-6 concise lesson titles.
    - Fit the scope to the stated duration and audience.
    """
    parts = [f"Topic: {topic}", f"Difficulty: {difficulty}"]
    if duration:
        parts.append(f"Duration: {duration}")
    if audience:
        parts.append(f"Target audience: {audience}")
    if style_tone:
        parts.append(f"Style and tone: {style_tone}")
    if additional_context:
        parts.append(f"Additional context: {additional_context[:20000]}")
    data = ask_for_json(system_prompt, "\n".join(parts))
    return normalize_outline(data)


def normalize_outline(data):
    if isinstance(data, list):
        data = {"chapters": data}
    if not isinstance(data, dict):
        raise AIServiceError("AI returned an outline in an unexpected format.")
    chapters = []
    for chapter in data.get("chapters") or data.get("outline") or []:
        if not isinstance(chapter, dict):
            continue
        lessons = [str(lesson.get("title", "")) if isinstance(lesson, dict) else str(lesson)
                   for lesson in chapter.get("lessons", [])]
        chapters.append({"title": str(chapter.get("title", "")), "lessons": [l for l in lessons if l]})
    return {
        "title": data.get("title"),
        "description": data.get("description"),
        "chapters": chapters,
    }


def refine_syllabus(raw_text):
    """Condense raw syllabus text into clean Markdown before outlining. Falls back to the raw text."""
    system_prompt = """
    You are a Curriculum Data Specialist. Your task is to "dehydrate" and "structure" a messy course syllabus.

    ## Output Requirements (Markdown Only)
    1. # Course Meta: (Course Name)
    2. # Weekly Schedule: (A Table with columns: Week/Lesson | Topic)
    3. # Assessment Plan: (List of Assignments, Quizzes, Exams with Week # and Weights)

    ## Rules
    - Remove ALL noise (copyright, disclaimers, page numbers).
    - If the input is empty or junk, return "No valid content found".
    """
    try:
        return get_chat_completion(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": f"Please refine this syllabus content:\n\n{raw_text[:30000]}"},
            ],
            temperature=0.2,
        )
    except AIServiceError as e:
        logger.warning("Syllabus refinement failed, using raw text: %s", e)
        return raw_text


def write_course_description(title, audience=None, key_points=None, style_tone=None):
    system_prompt = (
        "You are an expert course copywriter. Write a compelling course description of 120-200 words "
        "in plain text (no Markdown). Open with the learner outcome, then cover what is taught and who it is for."
    )
    parts = [f"Course title: {title}"]
    if audience:
        parts.append(f"Target audience: {audience}")
    if key_points:
        if isinstance(key_points, (list, tuple)):
            key_points = ", ".join(key_points)
        parts.append(f"Key points: {key_points}")
    if style_tone:
        parts.append(f"Tone: {style_tone}")
    return get_chat_completion(
        [{"role": "system", "content": system_prompt}, {"role": "user", "content": "\n".join(parts)}],
        temperature=0.7,
    ).strip()


def create_thumbnail_idea(topic, style_tone=None, additional_context=None):
    system_prompt = (
        "You are a visual designer for online course marketplaces. Describe one eye-catching course "
        "thumbnail: composition, main imagery, color palette, and a short overlay headline (max 5 words)."
    )
    parts = [f"Course topic: {topic}"]
    if style_tone:
        parts.append(f"Visual style: {style_tone}")
    if additional_context:
        parts.append(f"Notes: {additional_context}")
    return get_chat_completion(
        [{"role": "system", "content": system_prompt}, {"role": "user", "content": "\n".join(parts)}],
        temperature=0.9,
    ).strip()


def build_quiz(topic, difficulty="beginner", num_questions=5, question_types=QUESTION_TYPES,
               additional_context=None):
    system_prompt = """
    You are an assessment designer. Write a quiz on the given topic.

    Output Format (JSON), only include the requested question types:
    {
        "multiple_choice": [
            {"question": "...", "options": ["A", "B", "C", "D"], "correct_answer": 0, "explanation": "..."}
        ],
        "true_false": [
            {"question": "...", "correct_answer": true, "explanation": "..."}
        ],
        "short_answer": [
            {"question": "...", "sample_answer": "...", "grading_criteria": ["...", "..."]}
        ]
    }

    correct_answer for multiple choice is the zero-based index of the right option.
    """
    user_prompt = (
        f"Topic: {topic}\nDifficulty: {difficulty}\nTotal questions: {num_questions}\n"
        f"Question types: {', '.join(question_types)}"
    )
    if additional_context:
        user_prompt += f"\nAdditional context: {additional_context}"
    data = ask_for_json(system_prompt, user_prompt)
    if not isinstance(data, dict):
        raise AIServiceError("AI returned a quiz in an unexpected format.")
    return {qtype: data.get(qtype, []) if qtype in question_types else [] for qtype in QUESTION_TYPES}


# --- Recommendations ---

def recommendation_filters(profile, recent_titles=(), categories=()):
    """Ask the model which categories, keywords and levels suit a student profile."""
    system_prompt = f"""
    You are a course recommendation engine for an e-learning platform.
    Given a student's profile, choose what they should study next.

    Output Format (JSON):
    {{
        "categories": ["one or more of: {', '.join(categories)}"],
        "keywords": ["short search keywords, max 6"],
        "levels": ["beginner" | "intermediate" | "advanced"]
    }}
    """
    user_prompt = (
        f"Major: {profile.major}\n"
        f"University: {profile.university}\n"
        f"Semester: {profile.semester}\n"
        f"Disciplines: {', '.join(profile.disciplines) or 'N/A'}\n"
        f"Goals: {', '.join(profile.goals) or 'N/A'}\n"
        f"Learning styles: {', '.join(profile.learning_styles) or 'N/A'}\n"
        f"Preferred categories: {', '.join(profile.preferred_categories) or 'N/A'}\n"
        f"Preferred levels: {', '.join(profile.preferred_levels) or 'N/A'}\n"
        f"Recently engaged courses: {', '.join(recent_titles) or 'None'}"
    )
    data = ask_for_json(system_prompt, user_prompt, temperature=0.3)
    if not isinstance(data, dict):
        raise AIServiceError("AI returned recommendations in an unexpected format.")
    return {
        "categories": [str(c).lower() for c in data.get("categories", []) if c],
        "keywords": [str(k) for k in data.get("keywords", []) if k],
        "levels": [str(l).lower() for l in data.get("levels", []) if l],
    }
