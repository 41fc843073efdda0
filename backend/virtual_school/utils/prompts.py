"""Prompt templates sent to the generator for each artifact kind."""

import json
from typing import Optional


def quiz_prompt(topic: str, num_questions: int) -> str:
    return f"""
Create a quiz on the topic "{topic}".
Include {num_questions} multiple-choice questions with 4 options each.
Make sure questions are educational and appropriate.
The correctAnswer must be copied verbatim from the options.
Return only a JSON object like this:

{{
  "title": "Quiz on {topic}",
  "description": "Test your knowledge on {topic}",
  "questions": [
    {{
      "id": 1,
      "question": "Question text",
      "options": ["option1", "option2", "option3", "option4"],
      "correctAnswer": "option2",
      "explanation": "Brief explanation of why this is correct"
    }}
  ]
}}
"""


def notes_prompt(topic: str, grade_level: str) -> str:
    return f"""
Create educational notes on the topic "{topic}" for grade level "{grade_level}".
Make the content appropriate for the specified grade level.
Include key concepts, definitions, and examples.
Return only a JSON object like this:

{{
  "title": "Notes: {topic}",
  "gradeLevel": "{grade_level}",
  "sections": [
    {{
      "heading": "Introduction",
      "content": "Detailed explanation...",
      "keyPoints": ["point1", "point2", "point3"]
    }},
    {{
      "heading": "Key Concepts",
      "content": "Detailed explanation...",
      "keyPoints": ["concept1", "concept2"]
    }}
  ],
  "summary": "Brief summary of the topic"
}}
"""


def flashcards_prompt(topic: str) -> str:
    return f"""
Create flashcards on the topic "{topic}".
Generate 10-15 flashcards with questions and answers for study purposes.
Return only a JSON object like this:

{{
  "title": "Flashcards: {topic}",
  "cards": [
    {{
      "id": 1,
      "front": "Question or term",
      "back": "Answer or definition",
      "difficulty": "easy"
    }}
  ]
}}
"""


def assignment_prompt(topic: str, grade_level: str) -> str:
    return f"""
Create an assignment on the topic "{topic}" for grade level "{grade_level}".
Include different types of questions and tasks appropriate for the grade level.
Every question must have an integer "points" value.
Multiple-choice questions must include a correctAnswer copied verbatim from the options.
Return only a JSON object like this:

{{
  "title": "Assignment: {topic}",
  "gradeLevel": "{grade_level}",
  "instructions": "Complete all sections of this assignment...",
  "estimatedTime": "30-45 minutes",
  "sections": [
    {{
      "type": "multiple-choice",
      "title": "Multiple Choice Questions",
      "questions": [
        {{
          "question": "Question text",
          "options": ["A", "B", "C", "D"],
          "correctAnswer": "B",
          "points": 2
        }}
      ]
    }},
    {{
      "type": "short-answer",
      "title": "Short Answer Questions",
      "questions": [
        {{
          "question": "Question text",
          "expectedLength": "2-3 sentences",
          "points": 5
        }}
      ]
    }}
  ],
  "totalPoints": 25
}}
"""


def feedback_prompt(student_data: dict) -> str:
    return f"""
Analyze the following student performance data and provide constructive feedback:
{json.dumps(student_data, indent=2)}

Return only a JSON object like this:

{{
  "overallScore": 85,
  "strengths": ["Good understanding of concepts", "Strong analytical skills"],
  "improvements": ["Work on time management", "Review chapter 3"],
  "recommendations": [
    {{
      "topic": "Mathematics",
      "action": "Practice more word problems",
      "resources": ["Khan Academy", "Textbook Ch. 5"]
    }}
  ],
  "encouragement": "Great work! Keep practicing and you'll improve even more."
}}
"""


def tutor_prompt(question: str, grade_level: Optional[str]) -> str:
    return f"""
You are an AI tutor helping a student at grade level "{grade_level or 'general'}".
The student asked: "{question}"

Provide a helpful, educational response that explains the concept clearly with examples.
Use age-appropriate language and provide step-by-step explanations when needed.
Return only a JSON object like this:

{{
  "response": "Clear explanation of the concept...",
  "examples": [
    "Example 1: Detailed example",
    "Example 2: Another example"
  ],
  "relatedTopics": ["Topic 1", "Topic 2"],
  "practiceQuestions": [
    "Practice question 1",
    "Practice question 2"
  ],
  "difficulty": "beginner"
}}
"""


# Illustration prompts

def quiz_image_prompt(topic: str) -> str:
    return (f"Create an educational illustration for a quiz about {topic}. Make it colorful, engaging, "
            "and suitable for learning. The image should be informative and visually appealing.")


def notes_image_prompt(topic: str, grade_level: str) -> str:
    return (f"Create an educational diagram or illustration for study notes about {topic} for grade level "
            f"{grade_level}. Make it clear, informative, and age-appropriate. Include visual elements "
            "that help explain the concept.")


def flashcards_image_prompt(topic: str) -> str:
    return (f"Create a colorful, educational illustration for flashcards about {topic}. Make it visually "
            f"appealing and helpful for memorization. Include relevant symbols, diagrams, or icons related to {topic}.")


def flashcard_card_image_prompt(front: str, topic: str) -> str:
    return (f'Create a simple illustration for the flashcard about "{front}" related to {topic}. '
            "Make it clear and educational.")


def tutor_image_prompt(question: str, grade_level: Optional[str]) -> str:
    return (f'Create an educational illustration for the topic: "{question}". Make it clear, simple, and '
            f"appropriate for {grade_level or 'general'} level students. Focus on visual elements that "
            "help explain the concept.")


def custom_image_prompt(prompt: str, topic: Optional[str], style: str) -> str:
    related = f"This is related to the topic: {topic}." if topic else ""
    return f"Create a {style} illustration: {prompt}. Make it colorful, clear, and suitable for learning. {related}"
