from planmate.core.nlu import accumulate, detect_activity, extract_slots, missing_required, wants_plan


def test_detect_activity_date():
    assert detect_activity("I want to go on a date tonight") == "date"


def test_detect_activity_business_trip():
    assert detect_activity("Planning a business trip to Chicago") == "business trip"


def test_extract_slots_full_message():
    slots = extract_slots("Date tonight at 7pm in Riverside, around $60, we'll drive")
    assert slots["activityType"] == "date"
    assert slots["timing"] == {"departureTime": "7pm", "date": "tonight"}
    assert slots["location"] == {"destination": "Riverside"}
    assert slots["budget"] == "$60"
    assert slots["transportation"] == "driving"


def test_extract_slots_arrival_time():
    slots = extract_slots("I need to arrive by 8 pm")
    assert slots["timing"] == {"arrivalTime": "8pm"}


def test_extract_slots_origin_and_companions():
    slots = extract_slots("Heading from Brooklyn to Coney Island with my partner")
    assert slots["location"] == {"destination": "Coney Island", "current": "Brooklyn"}
    assert slots["companions"] == "my partner"


def test_extract_slots_budget_words():
    assert extract_slots("something cheap please")["budget"] == "low"
    assert extract_slots("let's splurge")["budget"] == "high"


def test_missing_required():
    assert missing_required({"activityType": "date"}) == ["timing", "location", "budget"]


def test_accumulate_over_messages():
    slots = accumulate(["date tonight", "at 7pm", "in Riverside"])
    assert slots["activityType"] == "date"
    assert slots["timing"] == {"date": "tonight", "departureTime": "7pm"}
    assert slots["location"] == {"destination": "Riverside"}
    assert missing_required(slots) == ["budget"]


def test_wants_plan():
    assert wants_plan("Please create the plan")
    assert wants_plan("ok go ahead")
    assert not wants_plan("I want to plan a date")


def test_business_trip_sets_purpose():
    slots = extract_slots("Planning a business trip to Chicago")
    assert slots["activityType"] == "business trip"
    assert slots["purpose"] == "business"
    assert slots["location"] == {"destination": "Chicago"}
