# assessments/intake.py
from typing import Dict, NamedTuple, Optional

from cores.exceptions import ValidationError
from .serializers import AnswerSerializer


class Selection(NamedTuple):
    selected_answer: Optional[str]
    time_taken: Optional[int]


UNANSWERED = Selection(None, None)


class AnswerIntake:
    """
    Checks a submitted answer list against the candidate's question set.

    Partial submissions are valid: any question missing from the payload is
    returned as unanswered. Nothing here touches the database.
    """

    def validate(self, questions, answers) -> Dict[int, Selection]:
        serializer = AnswerSerializer(data=answers, many=True)
        if not serializer.is_valid():
            raise ValidationError({"answers": serializer.errors})

        assigned = {q.id for q in questions}
        received: Dict[int, Selection] = {}
        outside = []

        for item in serializer.validated_data:
            question_id = item['questionId']
            if question_id not in assigned:
                outside.append(question_id)
                continue
            if question_id in received:
                raise ValidationError(f"Question {question_id} is answered more than once.")
            received[question_id] = Selection(
                self.normalize(item.get('selectedAnswer')),
                item.get('timeTaken'),
            )

        if outside:
            raise ValidationError(
                f"Answers reference questions outside the assigned set: {sorted(set(outside))}"
            )

        return {q.id: received.get(q.id, UNANSWERED) for q in questions}

    @staticmethod
    def normalize(value):
        if value is None:
            return None
        value = value.strip()
        return value or None
