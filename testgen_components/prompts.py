"""
Default prompt templates for test generation, subject titles and article
extraction.
"""

from .models import MULTIPLE_CHOICE, OPEN_ENDED, QuizRequest

CANNOT_ACCESS_CONTENT = "CANNOT_ACCESS_CONTENT"

TEST_SYSTEM_PROMPT = (
    "You are an expert teacher creating tests that assess reading and listening comprehension, "
    "vocabulary and language use in context."
)

CONTENT_EXTRACTION_SYSTEM_PROMPT = (
    "You are a precise content extractor that only extracts real content from web URLs. "
    "You MUST NEVER invent or make up content. If you cannot access the real content, "
    "clearly state that you cannot extract it rather than generating anything."
)


def video_instructions(is_video: bool, has_exact_timestamps: bool) -> str:
    if not is_video:
        return ''
    timing = (
        "Use the exact timestamps from the transcript whenever possible"
        if has_exact_timestamps
        else "The transcript timestamps are approximate; pick the closest one to where the content appears"
    )
    return f"""- Mark each question with a reference to the specific timestamp in the video as [Ref: MM:SS] at the end of the question
- Format timestamps as [Ref: 01:13] with minutes and seconds
- {timing}"""


def content_extraction_prompt(url: str) -> str:
    return f"""Extract the main article content from this URL: {url}

VERY IMPORTANT:
1. If you cannot access the actual content, respond ONLY with: "{CANNOT_ACCESS_CONTENT}"
2. DO NOT generate or make up ANY content
3. Only return the extracted content if you can actually access it
4. No introduction or explanation - only return the extracted content itself"""


def subject_prompt(content: str) -> str:
    return f"""Generate a concise subject title (3-7 words) for a test based on this content.
The subject should be short, direct, and reflect the main topic.
Rules to follow:
1. Do NOT use phrases like "Based on" or "Analysis of" - just provide the direct subject.
2. Do NOT use commas, colons, or semicolons in the title.
3. Do NOT begin with articles (the, a, an) or question words (how, what, why, when).
4. Reply with the title only.

Content: {content[:1500]}"""


def test_generation_prompt(request: QuizRequest, content_info: str, subject: str, today: str,
                           instructions: str = '') -> str:
    """Build the main test prompt; the output layout it asks for is what QuizTextParser reads."""
    professor = request.professor_name or 'Not specified'
    student = request.student_name or 'Not specified'
    question_types = ', '.join(request.question_types or [MULTIPLE_CHOICE, OPEN_ENDED])
    header = f"""Professor: {professor}
   Student: {student}
   Test about {subject}
   Date: {today}"""

    return f"""Create a test based ONLY on the provided content. DO NOT make up or invent any facts, information, or data that is not present in the content.
If you do not receive content, do not create the test.

Content URL: {request.content_url}
{content_info}

Test information:
- Professor: {professor}
- Student: {student}
- Student Level: {request.student_level or 'Medium'}
- Question Types: {question_types}
- Number of Questions: {request.number_of_questions} (You MUST create EXACTLY this number of questions)
- Additional Notes: {request.additional_notes or 'None'}
- Test Subject: {subject}
- Date: {today}

{instructions}

FORMATTING REQUIREMENTS:

1. Format the test header as follows:
   {header}

   Questions:

2. Number questions using the format "1)" rather than "1."

3. For multiple choice questions provide options as A), B), C), and D), each on its own line, with only one correct answer.

4. For true/false questions include "(True/False)" at the end of the question text.

5. After all questions, include a divider line "---" on its own line.

6. After the divider, repeat the header and then write:

   Answers:

7. In the answer section:
   - Multiple-choice: only the question number and the letter (e.g. "1) B")
   - True/false: only the question number and "True" or "False" (e.g. "7) True")
   - Open-ended: a VERY brief answer of at most 8 words (e.g. "3) Key traits of effective communication")
"""


CONVERSATION_SYSTEM_PROMPT = (
    "You are an expert English teacher creating conversation starters for students learning English. "
    "Your questions should be clear, engaging, and appropriate for the student's level."
)

TEACHING_TIPS_SYSTEM_PROMPT = (
    "You are an expert English teacher creating practical teaching resources for instructors. "
    "Focus only on aspects that provide meaningful value for the specific topic - don't include sections "
    "that wouldn't add significant teaching value."
)


def conversation_prompt(subject: str, student_level: str) -> str:
    return f"""Create 3-5 open-ended questions that a teacher can use to spark conversation with students at the beginning of a class.

IMPORTANT: Focus ONLY on general topics broadly related to the subject. DO NOT reference or make up any specific facts, data, or information that would require knowledge of a specific article or video.

These questions should:
1. Relate to the general subject/topic: "{subject}"
2. Be appropriate for {student_level or 'Medium'} level students
3. Encourage students to express opinions, share experiences, or discuss preferences
4. Be answerable by ANY student, whether or not they studied the content
5. Focus on building speaking confidence and fluency

Provide ONLY the questions, numbered "1)" to "5)", with no additional text, explanations, or headers."""


def teaching_tips_prompt(subject: str, student_level: str) -> str:
    return f"""Create a short guide with teaching tips for the general topic: "{subject}".

IMPORTANT: Provide ONLY universal teaching tips for the subject area. DO NOT reference or make up any specific facts or details from any particular article or video.

The tips should be appropriate for {student_level or 'Medium'} level students, practical in the classroom, and focused on common difficulties English learners have.

Include any of these sections, but ONLY if they add real value for this topic:

Vocabulary:
- 5-7 common words or phrases for the topic, each with a definition, an example sentence and usage notes

Grammar:
- 1-3 grammar points that fit the topic naturally, with example sentences and common mistakes

Pronunciation:
- Sounds or words from the topic that are hard to pronounce, with simple practice exercises

Format the response in clear sections with bullet points."""
