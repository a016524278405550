"""
Prompt templates and localized fixed texts used by the endpoints.
Keys of every table are the supported analysis languages.
"""

CHAT_FALLBACK_REPLY = "Sorry, I could not process your message."

ROLE_LABELS = {
    "en": {"user": "User", "assistant": "Assistant", "system": "System"},
    "pt": {"user": "Usuário", "assistant": "IA", "system": "Sistema"},
}

ANALYSIS_SYSTEM_PROMPT = {
    "en": (
        "You are an assistant specialized in analyzing conversations and "
        "extracting structured information. Always answer with valid JSON."
    ),
    "pt": (
        "Você é um assistente especializado em análise de conversas e extração "
        "de informações estruturadas. Sempre retorne respostas em JSON válido."
    ),
}

ANALYSIS_PROMPT = {
    "en": """
Analyze the following conversation and extract structured information, like an intelligent Visual Guide.

Conversation:
{transcript}

Return a JSON object with the following structure:
{{
  "keyPoints": ["Key point 1", "Key point 2", "..."],
  "topics": [
    {{
      "name": "Identified topic",
      "importance": "high|medium|low",
      "summary": "Short summary of the topic"
    }}
  ],
  "actionItems": ["Action item 1", "Action item 2"],
  "questions": ["Relevant question 1", "Relevant question 2"],
  "summary": "Overall summary of the conversation in 1-2 sentences",
  "nextSteps": "Suggested next steps"
}}

Focus on the most important and relevant points of the conversation, like automatic bullet points in a document editor. Write every value in English.""",
    "pt": """
Analise a seguinte conversa e extraia informações estruturadas como um sistema de Visual Guide inteligente.

Conversa:
{transcript}

Por favor, retorne um JSON com a seguinte estrutura:
{{
  "keyPoints": ["Ponto principal 1", "Ponto principal 2", "..."],
  "topics": [
    {{
      "name": "Tópico identificado",
      "importance": "high|medium|low",
      "summary": "Breve resumo do tópico"
    }}
  ],
  "actionItems": ["Item de ação 1", "Item de ação 2"],
  "questions": ["Pergunta relevante 1", "Pergunta relevante 2"],
  "summary": "Resumo geral da conversa em 1-2 frases",
  "nextSteps": "Próximos passos sugeridos"
}}

Foque em extrair os pontos mais importantes e relevantes da conversa, similar a bullet points automáticos. Escreva todos os valores em português.""",
}

PLACEHOLDER_ANALYSIS = {
    "en": {
        "keyPoints": ["Conversation in progress..."],
        "topics": [],
        "actionItems": [],
        "questions": [],
        "summary": "Conversation analysis in progress",
        "nextSteps": "Keep the conversation going for more insights",
    },
    "pt": {
        "keyPoints": ["Conversa em andamento..."],
        "topics": [],
        "actionItems": [],
        "questions": [],
        "summary": "Análise da conversa em progresso",
        "nextSteps": "Continue a conversa para mais insights",
    },
}


def build_analysis_prompt(transcript: str, language: str) -> str:
    return ANALYSIS_PROMPT[language].format(transcript=transcript)
