import logging
import random
import re
from fakeout.extensions import db
from fakeout.models.article import FABRICATION_REASONS
from fakeout.models.content_cache import ArticleContentCache
from fakeout.integrations.llm_gateway import LLMGateway
from fakeout.utils.text import (
    ensure_terminal_punctuation,
    lowercase_first,
    strip_terminal_punctuation,
)

logger = logging.getLogger(__name__)

GENERATION_GUIDELINES = (
    'Generate a fake news article about {category} with the fake news type "{fabrication_type}".\n'
    'Follow these guidelines:\n'
    '1. The article should be 3-4 complete, coherent sentences with a clear beginning and end\n'
    '2. Start with a title that makes sense with the content\n'
    "3. Make sure the article is complete and doesn't end mid-sentence\n"
    '4. The fake element should be identifiable but not absurdly obvious\n'
    '5. Include enough details to make it believable but false'
)

TYPE_INSTRUCTIONS = {
    'False Claim': (
        'Include a completely fabricated claim that sounds plausible but is demonstrably untrue. '
        'Base it on real-world elements but include a false assertion that could be fact-checked.'
    ),
    'Misleading Headline': (
        'Create a headline that misrepresents or exaggerates the actual content of the article. '
        'The headline should suggest something more dramatic than what the article actually states.'
    ),
    'Out of Context': (
        'Take a real fact or statistic but present it in a misleading context that changes its meaning '
        'or implications. Include the fact but frame it in a way that leads to incorrect conclusions.'
    ),
    'Satire or Parody': (
        "Write it as satire that could be mistaken for real news by someone who doesn't read carefully. "
        'Use elements of humor but make it subtle enough that some might believe it.'
    ),
    'Impersonation': (
        'Pretend the article is from a reputable source making an outlandish claim. '
        'Write as if a respected institution is endorsing something uncharacteristic.'
    ),
    'Manipulated Content': (
        'Include information that has been altered from its original meaning. '
        'Take something real but change key details that completely shift what it means.'
    ),
    'Conspiracy Theory': (
        'Include unfounded connections between unrelated events. Suggest a hidden plan or '
        "conspiracy without evidence, connecting dots that aren't actually related."
    ),
}
DEFAULT_INSTRUCTION = (
    'Make it clearly fake but somewhat believable. '
    "Include elements that could fool someone who isn't being critical."
)
RESPONSE_FORMAT = (
    '\n\nFormat your response as follows:\n'
    'Title: [Your headline here]\n'
    '[Body of the article with 3-4 complete sentences]'
)

REPAIR_REAL_PROMPT = """I have a real news article with the following headline and content. Please rewrite BOTH the headline and content to make them match better while preserving the key facts. Keep the content to 3-4 concise sentences. Don't make up new facts.

Original Headline: "{title}"
Original Content: "{content}"

Respond in this format only:
Headline: [Fixed headline]
Content: [Fixed content]"""

REPAIR_FAKE_PROMPT = """I have a fake news article with the following headline, content, and fake news type. Please rewrite BOTH the headline and content to better match each other while preserving the fake news type. Keep the content to 3-4 concise sentences.

Original Headline: "{title}"
Original Content: "{content}"
Fake News Type: "{reason}"

Respond in this format only:
Headline: [Fixed headline that matches the fake news type]
Content: [Fixed content that matches both the headline and the fake news type in 3-4 sentences]"""

BACKUP_FABRICATED_ARTICLES = [
    {
        'category': 'health',
        'reason': 'False Claim',
        'title': 'COVID Vaccine Causes Third Arm Growth in Florida Man',
        'content': (
            'A 45-year-old man from Florida claims to have grown a third arm after receiving his second '
            'dose of the COVID-19 vaccine. Medical experts dismiss the claim as physically impossible, '
            'noting that no such side effect has ever been documented.'
        ),
    },
    {
        'category': 'technology',
        'reason': 'Satire or Parody',
        'title': 'Apple Unveils iSleep Pod That Replaces Human Need for Sleep',
        'content': (
            'Apple has announced the iSleep Pod, a revolutionary device that supposedly eliminates the '
            'human need for sleep. The $4,999 pod allegedly recharges the human body in just 10 minutes, '
            'though scientists remain skeptical of these claims.'
        ),
    },
    {
        'category': 'politics',
        'reason': 'Conspiracy Theory',
        'title': 'Government Hiding Evidence of Alien Technology in White House Basement',
        'content': (
            'According to anonymous sources, the government has been hiding recovered alien technology '
            'in a secret White House basement facility. Officials have consistently denied these claims, '
            "calling them 'completely fabricated and without merit.'"
        ),
    },
]

FALLBACK_AUTHENTIC_ARTICLES = [
    {
        'category': 'science',
        'title': 'Scientists Discover New Species in Amazon Rainforest',
        'content': (
            'Researchers from the University of Brazil have discovered a new species of frog in the Amazon '
            "rainforest. The species, dubbed 'Dendrobates azureus amazonia', is characterized by its bright "
            'blue coloring and unique mating call.'
        ),
        'image_url': 'https://placehold.co/800x400?text=Amazon+Rainforest+Frog',
    },
    {
        'category': 'health',
        'title': 'New Cancer Treatment Shows Promise in Clinical Trials',
        'content': (
            'A new immunotherapy treatment for pancreatic cancer has shown promising results in phase III '
            'clinical trials. The treatment, developed by researchers at Stanford University, increased '
            '5-year survival rates by 40%.'
        ),
        'image_url': 'https://placehold.co/800x400?text=Cancer+Research',
    },
    {
        'category': 'technology',
        'title': 'AI Models Can Now Generate Life-Saving Medicines',
        'content': (
            'Researchers at MIT have demonstrated that AI models can now generate novel molecular structures '
            'for potential medicines with unprecedented accuracy. The system has already identified several '
            'promising candidates for treating rare diseases.'
        ),
        'image_url': 'https://placehold.co/800x400?text=AI+Medicine',
    },
]

_CLAIM_VERBS = re.compile(r'discovered|found|developed|announced|confirmed', re.I)
_OPPOSITES = {
    'increase': 'decrease',
    'decrease': 'increase',
    'improve': 'worsen',
    'reduce': 'amplify',
}
_OPPOSITE_WORDS = re.compile(r'increase|decrease|improve|reduce', re.I)


def parse_generated_article(text):
    """Split a 'Title: ...' response into (title, content)."""
    lines = [line.strip() for line in (text or '').splitlines() if line.strip()]
    if len(lines) > 1:
        title = lines[0]
        if title.lower().startswith('title:'):
            title = title[6:].strip()
        content = ' '.join(lines[1:])
    else:
        raw = (text or '').strip()
        parts = raw.split('.')
        if len(parts) > 1 and parts[0].strip():
            title = parts[0].strip()
            content = '.'.join(parts[1:]).strip()
        else:
            title = 'News Article'
            content = raw
    title = title.strip('"* ')
    return title, ensure_terminal_punctuation(content)


def parse_repair_response(text):
    """Pull 'Headline:' and 'Content:' fields out of a repair response; missing fields are None."""
    headline = re.search(r'Headline:\s*(.*?)(?:\n|$)', text or '', re.I)
    content = re.search(r'Content:\s*([\s\S]*)', text or '', re.I)
    return (
        headline.group(1).strip().strip('"') if headline and headline.group(1).strip() else None,
        content.group(1).strip().strip('"') if content and content.group(1).strip() else None,
    )


def fabricate_from(article, reason=None):
    """
    Rule-based fabrication of an authentic article.
    Returns a new fabricated-article dict; the input is not modified.
    """
    reason = reason or random.choice([r for r in FABRICATION_REASONS if r != 'Impersonation'])
    title = article.get('title', '')
    content = article.get('content', '')

    if reason == 'False Claim':
        title = _CLAIM_VERBS.sub('failed to prove', title, count=1)
        content = f"Contrary to widespread claims, {content.lower()}"
    elif reason == 'Misleading Headline':
        title = f"BREAKING: Revolutionary {title} Changes Everything We Know"
    elif reason == 'Out of Context':
        content = (
            f"In a completely unrelated context, {strip_terminal_punctuation(content)}. "
            f"Experts agree this has major implications for completely different fields."
        )
    elif reason == 'Satire or Parody':
        title = f"{title} Leads to Discovery of Aliens Living Among Us"
        content = (
            f"In a twist no one saw coming, {lowercase_first(strip_terminal_punctuation(content))}. "
            f"Scientists are now convinced this is proof of extraterrestrial life."
        )
    elif reason == 'Manipulated Content':
        content = _OPPOSITE_WORDS.sub(lambda m: _OPPOSITES[m.group(0).lower()], content)
    elif reason == 'Conspiracy Theory':
        title = f"The Truth They Don't Want You to Know: {title}"
        content = (
            f"Government insiders have revealed that {lowercase_first(strip_terminal_punctuation(content))}. "
            f"This information has been suppressed for decades."
        )
    elif reason == 'Impersonation':
        title = f"World Health Organization Officially Endorses: {title}"
        content = (
            f"In a statement attributed to senior officials, {lowercase_first(strip_terminal_punctuation(content))}. "
            f"The organization reportedly called it the most important finding of the century."
        )

    return {
        'title': title,
        'content': ensure_terminal_punctuation(content),
        'image_url': article.get('image_url'),
        'is_real': False,
        'reason': reason,
        'category': article.get('category') or 'general',
        'source': f"fabricated:{article.get('source') or 'rss'}",
    }


def fallback_article(category, fabrication_type):
    """Local stand-in when the LLM can't be reached."""
    pool = [a for a in BACKUP_FABRICATED_ARTICLES if a['reason'] == fabrication_type]
    if pool:
        chosen = pool[0]
        return {'title': chosen['title'], 'content': chosen['content']}
    base = random.choice(FALLBACK_AUTHENTIC_ARTICLES)
    fabricated = fabricate_from({**base, 'category': category}, fabrication_type)
    return {'title': fabricated['title'], 'content': fabricated['content']}


class ContentGenerator:
    def __init__(self, gateway=None):
        self.gateway = gateway or LLMGateway()

    def generate_article(self, category, fabrication_type):
        """
        Create a fabricated article of the given type.
        Never raises for upstream failures; returns {title, content, generated_by}.
        """
        if fabrication_type not in FABRICATION_REASONS:
            raise ValueError(f"Unknown fabrication type: {fabrication_type}")

        prompt = GENERATION_GUIDELINES.format(category=category, fabrication_type=fabrication_type)
        prompt += '\n' + TYPE_INSTRUCTIONS.get(fabrication_type, DEFAULT_INSTRUCTION)
        prompt += RESPONSE_FORMAT

        try:
            result = self.gateway.call(
                [{'role': 'user', 'content': prompt}],
                purpose='generate_article',
                max_tokens=300,
            )
            title, content = parse_generated_article(result['content'])
            if not content:
                raise ValueError('Empty article body')
            return {'title': title, 'content': content, 'generated_by': 'llm'}
        except Exception as e:
            logger.warning(f"Article generation fell back to rules ({fabrication_type}): {e}")
            article = fallback_article(category, fabrication_type)
            return {**article, 'generated_by': 'fallback'}

    def repair_mismatch(self, title, content, is_real, reason=None, article_id=None):
        """
        Rewrite a headline/body pair so they agree, keeping the fabrication type.
        Cached per original article id. Returns {title, content, from_cache}.
        """
        if article_id:
            cached = ArticleContentCache.query.filter_by(original_article_id=article_id).first()
            if cached:
                return {
                    'title': cached.fixed_title,
                    'content': cached.fixed_content,
                    'from_cache': True,
                }

        if is_real:
            prompt = REPAIR_REAL_PROMPT.format(title=title, content=content)
        else:
            prompt = REPAIR_FAKE_PROMPT.format(
                title=title, content=content, reason=reason or 'General fake news',
            )

        try:
            result = self.gateway.call(
                [{'role': 'user', 'content': prompt}],
                purpose='repair_mismatch',
                max_tokens=400,
                article_id=article_id,
            )
        except Exception as e:
            logger.warning(f"Content repair unavailable for {article_id or title[:40]}: {e}")
            return {'title': title, 'content': content, 'from_cache': False}

        fixed_title, fixed_content = parse_repair_response(result['content'])
        fixed_title = fixed_title or title
        fixed_content = fixed_content or content

        if article_id:
            self._write_cache(article_id, title, content, fixed_title, fixed_content, is_real)

        return {'title': fixed_title, 'content': fixed_content, 'from_cache': False}

    def _write_cache(self, article_id, title, content, fixed_title, fixed_content, is_real):
        try:
            db.session.add(ArticleContentCache(
                original_article_id=article_id,
                original_title=title,
                original_content=content,
                fixed_title=fixed_title,
                fixed_content=fixed_content,
                is_real=bool(is_real),
            ))
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Failed to cache repaired content for {article_id}: {e}")


def looks_mismatched(article):
    """Heuristic used to pick articles worth repairing before they are shown."""
    title = article.get('title') or ''
    if 'BREAKING' in title or 'Leads to Discovery' in title:
        return True
    if 'Truth' in title and 'Know' in title:
        return True
    if not article.get('is_real') and article.get('reason') in ('Satire or Parody', 'Misleading Headline'):
        return True
    return False
