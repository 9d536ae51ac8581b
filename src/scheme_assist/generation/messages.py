"""Templated, localized messages used whenever a generated answer is unavailable."""

from __future__ import annotations

INSUFFICIENT_INFORMATION = "insufficient_information"
GENERATION_UNAVAILABLE = "generation_unavailable"
NO_MATCHING_SCHEMES = "no_matching_schemes"
RETRY_PROMPT = "retry_prompt"
TIMEOUT = "timeout"
SERVICE_UNAVAILABLE = "service_unavailable"
ELIGIBLE = "eligible"
NOT_ELIGIBLE = "not_eligible"
INSUFFICIENT_PROFILE = "insufficient_profile"
ELIGIBILITY_UNAVAILABLE = "eligibility_unavailable"

_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        INSUFFICIENT_INFORMATION: (
            "I do not have enough information about this in the scheme documents. "
            "Please contact your nearest Common Service Centre for help."
        ),
        GENERATION_UNAVAILABLE: (
            "I am unable to prepare an answer right now. Please try again in a few minutes."
        ),
        NO_MATCHING_SCHEMES: (
            "I could not find any scheme matching your question. "
            "Please try asking in a different way."
        ),
        RETRY_PROMPT: "Sorry, I could not hear that clearly. Please say your question again.",
        TIMEOUT: "This is taking longer than expected. Please try again.",
        SERVICE_UNAVAILABLE: "The service is temporarily unavailable. Please try again later.",
        ELIGIBLE: "Based on your profile, you appear to be eligible for {scheme_id}.",
        NOT_ELIGIBLE: "Based on your profile, you do not appear to be eligible for {scheme_id}.",
        INSUFFICIENT_PROFILE: (
            "I need more details in your profile to check eligibility for {scheme_id}."
        ),
        ELIGIBILITY_UNAVAILABLE: (
            "I could not check your eligibility for {scheme_id} right now."
        ),
    },
    "hi": {
        INSUFFICIENT_INFORMATION: (
            "योजना दस्तावेज़ों में इसके बारे में पर्याप्त जानकारी नहीं है। "
            "कृपया सहायता के लिए अपने निकटतम जन सेवा केंद्र से संपर्क करें।"
        ),
        GENERATION_UNAVAILABLE: "मैं अभी उत्तर तैयार नहीं कर पा रहा हूँ। कृपया कुछ मिनट बाद फिर से प्रयास करें।",
        NO_MATCHING_SCHEMES: (
            "आपके प्रश्न से मेल खाती कोई योजना नहीं मिली। कृपया अपना प्रश्न दूसरे तरीके से पूछें।"
        ),
        RETRY_PROMPT: "क्षमा करें, मैं ठीक से सुन नहीं पाया। कृपया अपना प्रश्न फिर से बोलें।",
        TIMEOUT: "इसमें अपेक्षा से अधिक समय लग रहा है। कृपया फिर से प्रयास करें।",
        SERVICE_UNAVAILABLE: "सेवा अस्थायी रूप से उपलब्ध नहीं है। कृपया बाद में प्रयास करें।",
        ELIGIBLE: "आपकी प्रोफ़ाइल के अनुसार, आप {scheme_id} के लिए पात्र प्रतीत होते हैं।",
        NOT_ELIGIBLE: "आपकी प्रोफ़ाइल के अनुसार, आप {scheme_id} के लिए पात्र नहीं प्रतीत होते हैं।",
        INSUFFICIENT_PROFILE: "{scheme_id} की पात्रता जाँचने के लिए आपकी प्रोफ़ाइल में और जानकारी चाहिए।",
        ELIGIBILITY_UNAVAILABLE: "मैं अभी {scheme_id} के लिए आपकी पात्रता की जाँच नहीं कर सका।",
    },
}


def message(key: str, language: str = "en", **params: str) -> str:
    table = _MESSAGES.get(language.lower(), _MESSAGES["en"])
    template = table.get(key) or _MESSAGES["en"][key]
    return template.format(**params) if params else template
