"""
Built-in question bank

Used when no QUESTION_BANK_PATH is configured. Big enough for one default
quiz with a little room for shuffling.
"""

from .schema import Question


# =============================================================================
# SAMPLE QUESTIONS (Static)
# =============================================================================

SAMPLE_QUESTIONS = [
    Question(
        id="1",
        text="What is the capital of Kenya?",
        options=("Mombasa", "Nairobi", "Kisumu", "Nakuru"),
        correct_answer="B",
    ),
    Question(
        id="2",
        text="How many sides does a hexagon have?",
        options=("5", "7", "6", "8"),
        correct_answer="C",
    ),
    Question(
        id="3",
        text="Which planet is known as the Red Planet?",
        options=("Mars", "Venus", "Jupiter", "Mercury"),
        correct_answer="A",
    ),
    Question(
        id="4",
        text="What is 12 x 12?",
        options=("124", "132", "144", "154"),
        correct_answer="C",
    ),
    Question(
        id="5",
        text="Which is the longest river in Africa?",
        options=("Congo", "Niger", "Zambezi", "Nile"),
        correct_answer="D",
    ),
    Question(
        id="6",
        text="What gas do plants absorb from the air?",
        options=("Oxygen", "Carbon dioxide", "Nitrogen", "Hydrogen"),
        correct_answer="B",
    ),
    Question(
        id="7",
        text="Which is the highest mountain in Africa?",
        options=("Kilimanjaro", "Mount Kenya", "Rwenzori", "Mount Elgon"),
        correct_answer="A",
    ),
    Question(
        id="8",
        text="How many minutes are in two hours?",
        options=("100", "120", "140", "160"),
        correct_answer="B",
    ),
    Question(
        id="9",
        text="What is the largest ocean on Earth?",
        options=("Atlantic", "Indian", "Arctic", "Pacific"),
        correct_answer="D",
    ),
    Question(
        id="10",
        text="Which animal is known as the ship of the desert?",
        options=("Horse", "Camel", "Donkey", "Elephant"),
        correct_answer="B",
    ),
    Question(
        id="11",
        text="What is the boiling point of water at sea level in Celsius?",
        options=("90", "95", "100", "110"),
        correct_answer="C",
    ),
    Question(
        id="12",
        text="Which continent is Egypt in?",
        options=("Africa", "Asia", "Europe", "South America"),
        correct_answer="A",
    ),
]
