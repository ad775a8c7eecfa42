"""
Seed articles.

Articles have no create or update endpoint; this is how they get into the
database. Existing ids are left untouched so purchases keep pointing at them.
"""

import logging
from typing import Iterable, List, Mapping

from articlepay.database import session_scope
from articlepay.models import Article
from articlepay.script import address_to_pubkey_hash

logger = logging.getLogger(__name__)

SEED_ARTICLES = [
    {
        "id": "1",
        "title": "Understanding Bitcoin Micropayments",
        "author": "Satoshi Writer",
        "author_payment_address": "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
        "subject": "Blockchain Technology",
        "word_count": 850,
        "price": 100,
        "preview": (
            "Micropayments have been a long-standing promise of the internet. In this article, "
            "we explore how Bitcoin makes true micropayments possible for the first time..."
        ),
        "full_content": """Micropayments have been a long-standing promise of the internet. For decades, content creators, developers, and service providers have dreamed of a system where users could pay tiny amounts for digital goods and services.

## The Problem with Traditional Payment Systems

Traditional payment systems like credit cards charge fees that make small transactions economically unviable. A $0.01 payment might incur a $0.30 fee plus 2.9%, making the transaction cost more than the payment itself.

## Low Fees Change the Equation

- Fees well below a cent per transaction
- Transactions broadcast instantly
- Payments go straight to the writer's address

## The Future

Micropayments let readers pay for exactly what they read, finally fulfilling the promise of the internet as a frictionless marketplace for information.""",
    },
    {
        "id": "2",
        "title": "The Future of Content Monetization",
        "author": "Jane Blockchain",
        "author_payment_address": "1BvBMSEYstWetqTFn5Au4m4GFg7xJaNVN2",
        "subject": "Digital Economy",
        "word_count": 1200,
        "price": 150,
        "preview": (
            "Traditional content monetization models are broken. Subscriptions are too expensive, "
            "and ads are intrusive. Discover how micropayments can revolutionize..."
        ),
        "full_content": """The digital content industry is at a crossroads. Traditional monetization models are failing both creators and consumers.

## The Subscription Fatigue Problem

Modern consumers are drowning in subscriptions, most of which go unused.

## The Ad-Supported Alternative

Advertising trades attention and privacy for access, and rewards clicks over quality.

## Paying Per Article

With micropayments a reader pays a few cents for the one article they want, and the writer is paid directly.""",
    },
    {
        "id": "3",
        "title": "Wallet Standards for Application Payments",
        "author": "Tech Innovator",
        "author_payment_address": "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
        "subject": "Web3 Protocols",
        "word_count": 950,
        "price": 120,
        "preview": (
            "A standard wallet interface lets applications request payments and signatures "
            "without holding keys. This enables seamless payment flows..."
        ),
        "full_content": """Applications should never hold their users' keys. A standard wallet interface lets an app describe the outputs it wants and leave signing and broadcasting to the wallet.

## Creating an Action

```
createAction({description, outputs: [{lockingScript, satoshis}]})
```

The wallet returns the `txid` of the broadcast transaction.

## Authenticated Requests

The same wallet can sign a server challenge, proving control of an identity key without revealing a secret.""",
    },
    {
        "id": "4",
        "title": "Instant Settlements: Why It Matters",
        "author": "Crypto Analyst",
        "author_payment_address": "1BvBMSEYstWetqTFn5Au4m4GFg7xJaNVN2",
        "subject": "Financial Technology",
        "word_count": 780,
        "price": 80,
        "preview": (
            "In traditional payment systems, settlements can take days. Learn why instant settlement "
            "is crucial for micropayments..."
        ),
        "full_content": """In traditional payment systems, settlement can take days. For a payment of a few cents, waiting days for settlement makes no sense.

## Why Speed Matters

- Writers see revenue as it happens
- Readers get content the moment they pay
- No chargebacks to reconcile later

## Conclusion

Instant settlement is what makes pay-per-article practical.""",
    },
]


def seed_articles(articles: Iterable[Mapping] = SEED_ARTICLES) -> List[str]:
    """
    Insert articles whose ids are not present yet.

    Returns:
        Ids of the articles that were inserted

    Raises:
        ValueError: an article has a negative price or an invalid payment address
    """
    inserted = []
    with session_scope() as session:
        for data in articles:
            if data["price"] < 0:
                raise ValueError(f"Article {data['id']} has a negative price")
            address_to_pubkey_hash(data["author_payment_address"])

            if session.get(Article, data["id"]) is not None:
                logger.debug(f"Article {data['id']} already present, skipping")
                continue

            session.add(Article(**data))
            inserted.append(data["id"])

    logger.info(f"Seeded {len(inserted)} articles")
    return inserted
