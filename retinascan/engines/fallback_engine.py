from types import MappingProxyType
from typing import Mapping
from retinascan.schemas.internal_models import GeminiAssessment

GENERIC_REMEDY = "Please consult with an ophthalmologist for a comprehensive eye examination and treatment plan."

GENERIC_DESCRIPTION_TEMPLATE = (
    "{classification} has been detected in your retinal scan. This condition affects the blood vessels in the retina "
    "and may impact your vision if left untreated. The severity level indicates how much the retina has been affected "
    "by diabetes-related changes."
)

GENERIC_CAUSE = (
    "Diabetic retinopathy is generally caused by prolonged high blood sugar levels damaging the blood vessels in the "
    "retina. Contributing factors may include duration of diabetes, blood pressure, cholesterol levels, and overall "
    "diabetes management."
)

FALLBACK_ASSESSMENTS: Mapping[str, GeminiAssessment] = MappingProxyType({
    "No DR": GeminiAssessment(
        description=(
            "Your retinal scan shows no signs of diabetic retinopathy. The blood vessels in your retina appear healthy "
            "without any diabetes-related damage. This is an excellent result, but continued monitoring is important "
            "as diabetic retinopathy can develop over time in people with diabetes."
        ),
        cause=(
            "Not applicable - no diabetic retinopathy detected. Your current diabetes management appears to be "
            "effectively protecting your eye health."
        ),
        remedy="Maintain regular annual eye exams and keep your blood sugar levels well controlled.",
    ),
    "Mild": GeminiAssessment(
        description=(
            "Your scan indicates mild non-proliferative diabetic retinopathy (NPDR). Small areas of balloon-like "
            "swelling called microaneurysms have been detected in the retina's blood vessels. At this early stage, "
            "there is typically no noticeable vision loss, but it signals that diabetes is beginning to affect your eyes."
        ),
        cause=(
            "This early stage may be caused by prolonged periods of elevated blood sugar levels, which weaken the tiny "
            "blood vessels in the retina. Contributing factors could include inconsistent diabetes management, high "
            "blood pressure, or duration of diabetes."
        ),
        remedy="Schedule a follow-up with your ophthalmologist within 6-12 months and focus on strict blood sugar control.",
    ),
    "Moderate": GeminiAssessment(
        description=(
            "Moderate non-proliferative diabetic retinopathy has been detected. The blood vessels in your retina are "
            "showing more significant damage, with some vessels becoming blocked. This can lead to reduced blood flow "
            "to parts of your retina and may start affecting your vision quality."
        ),
        cause=(
            "Progression to this stage is typically associated with chronic hyperglycemia over several years, combined "
            "with factors like uncontrolled hypertension, high cholesterol, or smoking. Inadequate diabetes management "
            "accelerates vessel damage."
        ),
        remedy="Consult your ophthalmologist within 3-6 months for detailed examination and potential treatment planning.",
    ),
    "Severe": GeminiAssessment(
        description=(
            "Your scan reveals severe non-proliferative diabetic retinopathy. Many blood vessels in your retina are "
            "blocked, depriving several areas of adequate blood supply. This significantly increases the risk of "
            "progression to proliferative diabetic retinopathy and potential vision loss."
        ),
        cause=(
            "Severe retinopathy usually results from years of poorly controlled diabetes with persistent high blood "
            "sugar, often compounded by hypertension and kidney disease. The extensive blockage indicates significant "
            "cumulative damage to retinal blood vessels."
        ),
        remedy="Seek urgent consultation with a retina specialist within 2-4 weeks for possible laser treatment or injections.",
    ),
    "Proliferative DR": GeminiAssessment(
        description=(
            "Proliferative diabetic retinopathy (PDR), the most advanced stage, has been detected. New, abnormal blood "
            "vessels are growing on the retina's surface. These fragile vessels can leak blood into the eye and cause "
            "retinal detachment, leading to severe vision loss or blindness if untreated."
        ),
        cause=(
            "PDR develops when severe oxygen deprivation triggers abnormal blood vessel growth. This typically results "
            "from long-standing diabetes with poor glycemic control, often combined with hypertension, nephropathy, and "
            "delayed treatment of earlier retinopathy stages."
        ),
        remedy="Seek immediate medical attention from a retina specialist for urgent treatment including laser therapy or vitrectomy.",
    ),
})

KNOWN_CLASSIFICATIONS = tuple(FALLBACK_ASSESSMENTS.keys())

def get_fallback_assessment(classification: str) -> GeminiAssessment:
    """Static assessment for a classification. Total: unknown labels get a generic entry."""
    known = FALLBACK_ASSESSMENTS.get(classification)
    if known is not None:
        return known
    return GeminiAssessment(
        description=GENERIC_DESCRIPTION_TEMPLATE.format(classification=classification),
        cause=GENERIC_CAUSE,
        remedy=GENERIC_REMEDY,
    )
