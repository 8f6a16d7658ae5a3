"""
Built-in question bank. Entries are templates: every issued challenge is a
copy with a fresh id.
"""

from __future__ import annotations

from typing import List

from .models import Challenge, ChallengeType, Difficulty

_T = ChallengeType
_D = Difficulty

QUESTION_BANK: List[Challenge] = [
    # Math
    Challenge("math_1", _T.MATH, "What is 17 × 23?", 391, _D.MEDIUM, time_limit_seconds=60),
    Challenge(
        "math_2", _T.MATH,
        "If a train travels 120 km in 1.5 hours, what is its speed in km/h?",
        80, _D.MEDIUM, time_limit_seconds=90,
    ),
    Challenge("math_3", _T.MATH, "What is the square root of 144?", 12, _D.EASY, time_limit_seconds=30),
    Challenge("math_4", _T.MATH, "What is 2^8 (2 to the power of 8)?", 256, _D.MEDIUM, time_limit_seconds=45),

    # Science
    Challenge("science_1", _T.SCIENCE, "What is the chemical symbol for gold?", "Au", _D.MEDIUM,
              time_limit_seconds=30),
    Challenge("science_2", _T.SCIENCE, "How many bones are in an adult human body?", 206, _D.HARD,
              time_limit_seconds=60),
    Challenge(
        "science_3", _T.SCIENCE,
        "What gas makes up approximately 78% of Earth's atmosphere?",
        "nitrogen", _D.MEDIUM, time_limit_seconds=45,
    ),

    # Puzzles
    Challenge(
        "puzzle_1", _T.PUZZLE,
        "I am not alive, but I grow; I don't have lungs, but I need air; "
        "I don't have a mouth, but water kills me. What am I?",
        "fire", _D.HARD, time_limit_seconds=120,
    ),
    Challenge("puzzle_2", _T.PUZZLE, "What comes next in this sequence: 2, 6, 12, 20, 30, ?", 42, _D.HARD,
              time_limit_seconds=90),
    Challenge(
        "puzzle_3", _T.PUZZLE,
        "A man lives on the 20th floor of an apartment building. Every morning he takes "
        "the elevator down to the ground floor. When he comes home, he takes the elevator "
        "to the 10th floor and walks the rest of the way... except on rainy days, when he "
        "takes the elevator all the way to the 20th floor. Why?",
        "he is too short to reach the button for the 20th floor", _D.HARD, time_limit_seconds=180,
    ),

    # Riddles
    Challenge("riddle_1", _T.RIDDLE, "The more you take, the more you leave behind. What am I?",
              "footsteps", _D.MEDIUM, time_limit_seconds=60),
    Challenge(
        "riddle_2", _T.RIDDLE,
        "What has keys but no locks, space but no room, and you can enter but not go inside?",
        "keyboard", _D.MEDIUM, time_limit_seconds=90,
    ),

    # Multiple choice
    Challenge(
        "mc_1", _T.PUZZLE, 'Which planet is known as the "Red Planet"?', "Mars", _D.EASY,
        options=("Venus", "Mars", "Jupiter", "Saturn"), time_limit_seconds=30,
    ),
    Challenge(
        "mc_2", _T.SCIENCE, "What is the powerhouse of the cell?", "Mitochondria", _D.MEDIUM,
        options=("Nucleus", "Ribosome", "Mitochondria", "Endoplasmic Reticulum"),
        time_limit_seconds=45,
    ),
]
