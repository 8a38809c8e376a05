"""
Feedback submissions collected from the public form.
"""

from sqlalchemy import Column, String, Text

from feedback_admin.models.base import Base, TimestampMixin, UnicodeJSON, UUIDMixin


# Required survey answers, in form order (attribute name -> JSON field name)
FEEDBACK_FIELDS = {
    "ease_of_use": "easeOfUse",
    "feature_clarity": "featureClarity",
    "design_impression": "designImpression",
    "explanation_helpfulness": "explanationHelpfulness",
    "useful_feedback_types": "usefulFeedbackTypes",
    "confidence_level": "confidenceLevel",
    "liked_most": "likedMost",
    "improvements": "improvements",
    "use_again": "useAgain",
    "language_background": "languageBackground",
    "study_level": "studyLevel",
}


class Feedback(Base, UUIDMixin, TimestampMixin):
    """
    One survey response.

    All answers are stored as free text except useful_feedback_types,
    which is a JSON list of the options the respondent ticked.
    ip_address and user_agent are captured from the request for abuse review.
    """

    __tablename__ = "feedback"

    ease_of_use = Column(String(255), nullable=False)
    feature_clarity = Column(String(255), nullable=False)
    design_impression = Column(String(255), nullable=False)
    explanation_helpfulness = Column(String(255), nullable=False)
    useful_feedback_types = Column(UnicodeJSON, nullable=False, default=list)
    confidence_level = Column(String(255), nullable=False)
    liked_most = Column(Text, nullable=False)
    improvements = Column(Text, nullable=False)
    use_again = Column(String(255), nullable=False, index=True)
    language_background = Column(String(255), nullable=False)
    study_level = Column(String(255), nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)

    def __repr__(self) -> str:
        return f"Feedback(id={self.id!r}, created_at={self.created_at!r})"
