from cairo_vm.vm.run_resources import RunResources


class TestRunResources:
    def test_init_default(self):
        run_resources = RunResources()
        assert run_resources.n_steps is None
        assert not run_resources.consumed()

    def test_init_with_n_steps(self):
        run_resources = RunResources(n_steps=100)
        assert run_resources.n_steps == 100

    def test_consume_step(self):
        run_resources = RunResources(n_steps=2)
        run_resources.consume_step()
        assert not run_resources.consumed()
        run_resources.consume_step()
        assert run_resources.consumed()
        assert run_resources.n_steps == 0

    def test_unbounded_never_consumed(self):
        run_resources = RunResources()
        for _ in range(10):
            run_resources.consume_step()
        assert run_resources.n_steps is None
        assert not run_resources.consumed()

    def test_zero_steps_is_consumed(self):
        assert RunResources(n_steps=0).consumed()
