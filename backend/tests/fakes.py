from videoquiz.llm import TextGenerator

GOOD_RESPONSE = """Sure! Here are your questions:
{
  "questions": [
    {
      "question": "What does the speaker introduce first?",
      "options": ["Cells", "Atoms", "Planets", "Rivers"],
      "correct_answer": 1,
      "explanation": "Atoms come first."
    },
    {
      "question": "Which option repeats itself here?",
      "options": ["Same", "same ", "Other", "Else"],
      "correct_answer": 0
    },
    {
      "question": "Too few options in this one?",
      "options": ["A", "B", "C"],
      "correct_answer": 0
    },
    {
      "question": "What is the second topic covered?",
      "options": ["Heat", "Light", "Sound", "Motion"]
    }
  ]
}
Hope this helps."""


class FakeGenerator(TextGenerator):
    """Replays canned responses; exceptions in the list are raised instead."""

    model = "fake-model"

    def __init__(self, responses=None, default=GOOD_RESPONSE):
        self.responses = list(responses or [])
        self.default = default
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        response = self.responses.pop(0) if self.responses else self.default
        if isinstance(response, Exception):
            raise response
        return response
