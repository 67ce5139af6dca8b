import random

import pytest

from bigtwo.cards import (
    THREE_OF_CLUBS,
    Card,
    build_deck,
    cards_to_labels,
    deal,
    full_deck,
    highest_card,
    parse_cards,
    parse_label,
    sort_cards,
)


def test_full_deck_has_52_unique_cards():
    deck = full_deck()
    assert len(deck) == 52
    assert len(set(deck)) == 52


def test_card_validation_rejects_invalid_labels():
    with pytest.raises(ValueError, match="Invalid rank"):
        Card("1", "C")
    with pytest.raises(ValueError, match="Invalid suit"):
        Card("A", "X")


def test_parse_label_accepts_lowercase_and_ten_alias():
    assert parse_label("3c") == THREE_OF_CLUBS
    assert parse_label("10H") == Card("10", "H")
    assert parse_label("th") == Card("10", "H")
    with pytest.raises(ValueError, match="Invalid card label"):
        parse_label("10HX")


def test_ranking_puts_three_of_clubs_lowest_and_two_of_diamonds_highest():
    ordered = sort_cards(build_deck(random.Random(3)))
    assert ordered[0] == THREE_OF_CLUBS
    assert ordered[-1] == Card("2", "D")
    # Suit only breaks ties within a rank.
    assert Card("4", "C").strength > Card("3", "D").strength


def test_highest_card_uses_suit_tie_break():
    assert highest_card(parse_cards(["KH", "KS", "QD"])) == Card("K", "H")


def test_deal_removes_cards_and_guards_against_short_deck():
    deck = build_deck(random.Random(11))
    hand = deal(deck, 13)
    assert len(hand) == 13
    assert len(deck) == 39
    assert not set(hand) & set(deck)
    with pytest.raises(ValueError, match="Not enough cards"):
        deal(deck, 40)


def test_build_deck_is_reproducible_with_seeded_rng():
    assert build_deck(random.Random(5)) == build_deck(random.Random(5))


def test_labels_round_trip_through_parse():
    labels = ["3C", "10D", "2S"]
    assert cards_to_labels(parse_cards(labels)) == labels
