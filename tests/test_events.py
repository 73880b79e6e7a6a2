from moonlit_garden.events import EventBus, PlantLost, PlantPlanted


def test_subscribers_receive_matching_events():
    bus = EventBus()
    planted, everything = [], []
    bus.subscribe(PlantPlanted, planted.append)
    bus.subscribe(object, everything.append)

    sprout = PlantPlanted(plot_id=0, plant_id="p1", variety_id="herb_mint", success=True)
    wilted = PlantLost(plot_id=0, plant_id="p1", cause="frost")
    bus.emit(sprout)
    bus.emit(wilted)

    assert planted == [sprout]
    assert everything == [sprout, wilted]


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    seen = []
    bus.subscribe(PlantLost, seen.append)
    bus.unsubscribe(PlantLost, seen.append)
    bus.unsubscribe(PlantLost, seen.append)
    bus.emit(PlantLost(plot_id=1, plant_id="p2", cause="hail"))
    assert seen == []


def test_handler_may_subscribe_while_emitting():
    bus = EventBus()
    late = []

    def register(event):
        bus.subscribe(PlantLost, late.append)

    bus.subscribe(PlantPlanted, register)
    bus.emit(PlantPlanted(plot_id=0, plant_id="p", variety_id="v", success=False))
    bus.emit(PlantLost(plot_id=0, plant_id="p", cause="storm"))
    assert len(late) == 1
