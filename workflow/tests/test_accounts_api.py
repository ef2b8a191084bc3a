"""
HTTP tests for account administration, the test catalog and portal
appointments.
"""
from django.core.cache import cache
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from workflow.models import Department, DiagnosticTest, MobileAppointment, User


class AccountAPITests(APITestCase):
    def setUp(self) -> None:
        cache.clear()
        self.mri = Department.objects.create(name='MRI', code='mri')
        self.ct = Department.objects.create(name='CT Scan', code='ct')
        self.root = User.objects.create_user(username='root', password='rootpass', role=User.ROLE_SUPER_ADMIN)
        self.admin = User.objects.create_user(username='admin1', password='adminpass', role=User.ROLE_ADMIN)
        self.desk = User.objects.create_user(username='desk1', password='deskpass', role=User.ROLE_RECEPTION)

    def authenticate(self, user: User) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def login(self, username, password):
        return APIClient().post('/api/auth/login', {'username': username, 'password': password}, format='json')

    def assertError(self, response, http_status, code):
        self.assertEqual(response.status_code, http_status, response.data)
        self.assertFalse(response.data['ok'])
        self.assertEqual(response.data['error']['code'], code)

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------
    def test_admin_creates_department_user_who_can_log_in(self):
        admin = self.authenticate(self.admin)
        r = admin.post('/api/users', {
            'username': 'ct2', 'password': 'ctpass123', 'role': 'department_user',
            'department': self.ct.id, 'firstName': 'Kiran', 'lastName': 'Das', 'phone': '9000000005',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED, r.data)
        self.assertEqual(r.data['department']['id'], self.ct.id)
        self.assertEqual(r.data['name'], 'Kiran Das')
        self.assertTrue(r.data['isActive'])
        self.assertNotIn('password', r.data)

        login = self.login('ct2', 'ctpass123')
        self.assertEqual(login.status_code, status.HTTP_200_OK)
        self.assertEqual(login.data['user']['department'], self.ct.id)

    def test_user_creation_is_validated(self):
        admin = self.authenticate(self.admin)
        r = admin.post('/api/users', {'username': 'x1', 'password': 'longenough', 'role': 'department_user'},
                       format='json')
        self.assertError(r, status.HTTP_400_BAD_REQUEST, 'invalid_argument')

        r = admin.post('/api/users', {'username': 'DESK1', 'password': 'longenough', 'role': 'reception'},
                       format='json')
        self.assertError(r, status.HTTP_400_BAD_REQUEST, 'invalid_argument')

        r = admin.post('/api/users', {'username': 'x2', 'password': 'longenough', 'role': 'department_user',
                                      'department': 999999}, format='json')
        self.assertError(r, status.HTTP_404_NOT_FOUND, 'not_found')

        r = admin.post('/api/users', {'username': 'x3', 'password': 'short', 'role': 'reception'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        r = admin.post('/api/users', {'username': 'x4', 'password': 'longenough', 'role': 'janitor'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(username__startswith='x').exists())

    def test_user_endpoints_are_admin_only(self):
        desk = self.authenticate(self.desk)
        self.assertEqual(desk.get('/api/users').status_code, status.HTTP_403_FORBIDDEN)
        r = desk.post('/api/users', {'username': 'y', 'password': 'longenough', 'role': 'admin'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(desk.patch(f'/api/users/{self.admin.id}/deactivate').status_code,
                         status.HTTP_403_FORBIDDEN)

    def test_only_super_admin_manages_super_admins(self):
        body = {'username': 'root2', 'password': 'longenough', 'role': 'super_admin'}
        r = self.authenticate(self.admin).post('/api/users', body, format='json')
        self.assertError(r, status.HTTP_403_FORBIDDEN, 'permission_denied')
        r = self.authenticate(self.admin).patch(f'/api/users/{self.root.id}/deactivate')
        self.assertError(r, status.HTTP_403_FORBIDDEN, 'permission_denied')

        r = self.authenticate(self.root).post('/api/users', body, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)

    def test_list_filter_and_update_user(self):
        dept_user = User.objects.create_user(
            username='mri1', password='mripass', role=User.ROLE_DEPARTMENT_USER, department=self.mri,
        )
        admin = self.authenticate(self.admin)
        r = admin.get('/api/users', {'role': 'department_user'})
        self.assertEqual([u['username'] for u in r.data], ['mri1'])
        self.assertEqual(len(admin.get('/api/users', {'department': self.mri.id}).data), 1)
        self.assertEqual(admin.get('/api/users', {'role': 'janitor'}).status_code, status.HTTP_400_BAD_REQUEST)

        r = admin.put(f'/api/users/{dept_user.id}', {
            'department': self.ct.id, 'phone': '9000000007', 'password': 'hijacked1',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK, r.data)
        self.assertEqual(r.data['department']['id'], self.ct.id)
        self.assertEqual(r.data['phone'], '9000000007')
        dept_user.refresh_from_db()
        self.assertTrue(dept_user.check_password('mripass'))

        r = admin.put(f'/api/users/{dept_user.id}', {'department': None}, format='json')
        self.assertError(r, status.HTTP_400_BAD_REQUEST, 'invalid_argument')
        self.assertError(admin.get('/api/users/999999'), status.HTTP_404_NOT_FOUND, 'not_found')

    def test_deactivated_user_cannot_log_in(self):
        admin = self.authenticate(self.admin)
        r = admin.patch(f'/api/users/{self.desk.id}/deactivate')
        self.assertFalse(r.data['user']['isActive'])
        self.assertError(self.login('desk1', 'deskpass'), status.HTTP_400_BAD_REQUEST, 'invalid_credentials')
        self.assertEqual([u['username'] for u in admin.get('/api/users', {'active': 'false'}).data], ['desk1'])

        admin.patch(f'/api/users/{self.desk.id}/activate')
        self.assertEqual(self.login('desk1', 'deskpass').status_code, status.HTTP_200_OK)

        r = admin.patch(f'/api/users/{self.admin.id}/deactivate')
        self.assertError(r, status.HTTP_409_CONFLICT, 'precondition_failed')

    def test_register_endpoint(self):
        r = self.authenticate(self.admin).post('/api/auth/register', {
            'name': 'Sita Menon', 'username': 'sita', 'password': 'sitapass1', 'role': 'reception',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED, r.data)
        self.assertEqual(r.data['user']['name'], 'Sita Menon')
        self.assertEqual(User.objects.get(username='sita').last_name, 'Menon')

        r = self.authenticate(self.desk).post('/api/auth/register', {
            'name': 'X', 'username': 'x', 'password': 'longenough', 'role': 'admin',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    # ------------------------------------------------------------------
    # test catalog
    # ------------------------------------------------------------------
    def test_catalog_create_and_lookups(self):
        admin = self.authenticate(self.admin)
        r = admin.post('/api/tests', {
            'name': 'MRI Brain', 'code': 'MRB', 'price': '4000.00', 'offerRate': '3500.00',
            'department': self.mri.id,
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED, r.data)
        self.assertEqual(r.data['departmentName'], 'mri')
        self.assertEqual(r.data['price'], '4000.00')
        DiagnosticTest.objects.create(name='CT Chest', department=self.ct)

        desk = self.authenticate(self.desk)
        self.assertEqual(len(desk.get('/api/tests').data), 2)
        self.assertEqual([t['name'] for t in desk.get(f'/api/tests/department/{self.ct.id}').data], ['CT Chest'])
        self.assertEqual([t['name'] for t in desk.get('/api/tests/by-dept-name/MRI').data], ['MRI Brain'])

        r = desk.post('/api/tests', {'name': 'X', 'department': self.mri.id}, format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        r = admin.post('/api/tests', {'name': 'X', 'department': 999999}, format='json')
        self.assertError(r, status.HTTP_404_NOT_FOUND, 'not_found')

    def test_catalog_follows_department_rename_and_blocks_delete(self):
        DiagnosticTest.objects.create(name='MRI Knee', department=self.mri)
        admin = self.authenticate(self.admin)
        admin.put(f'/api/departments/{self.mri.id}', {'name': 'Magnetic Resonance'}, format='json')
        r = admin.get('/api/tests/by-dept-name/magnetic%20resonance')
        self.assertEqual([t['name'] for t in r.data], ['MRI Knee'])

        r = admin.delete(f'/api/departments/{self.mri.id}')
        self.assertError(r, status.HTTP_409_CONFLICT, 'precondition_failed')

    # ------------------------------------------------------------------
    # portal appointments
    # ------------------------------------------------------------------
    def booking(self, **extra) -> dict:
        body = {
            'procedure': 'MRI Knee', 'center': 'Main', 'fullName': 'Ravi Kumar', 'mobile': '9000000002',
            'date': '2026-11-02', 'time': '10:30', 'paymentMethod': 'Pay at Center',
        }
        body.update(extra)
        return body

    def test_portal_user_books_and_manages_appointments(self):
        ravi = User.objects.create_user(username='ravi', password='ravipass', role=User.ROLE_PATIENT,
                                        phone='9000000002')
        portal = self.authenticate(ravi)

        r = portal.post('/api/mobile/appointments', self.booking(), format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED, r.data)
        appt = r.data['appointment']
        self.assertEqual((appt['status'], appt['paymentStatus']), ('Pending', 'Pending'))

        r = portal.post('/api/mobile/appointments', self.booking(paymentMethod='Pay Now', date='2026-11-05'),
                        format='json')
        self.assertEqual(r.data['appointment']['paymentStatus'], 'Completed')

        r = portal.get('/api/mobile/appointments')
        self.assertEqual([a['date'] for a in r.data['appointments']], ['2026-11-05', '2026-11-02'])

        r = portal.put(f"/api/mobile/appointments/{appt['id']}", {'time': '11:00'}, format='json')
        self.assertEqual(r.data['appointment']['time'], '11:00')
        r = portal.put(f"/api/mobile/appointments/{appt['id']}", {'status': 'Confirmed'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        r = portal.put(f"/api/mobile/appointments/{appt['id']}", {'status': 'Cancelled'}, format='json')
        self.assertEqual(r.data['appointment']['status'], 'Cancelled')
        r = portal.put(f"/api/mobile/appointments/{appt['id']}", {'time': '12:00'}, format='json')
        self.assertError(r, status.HTTP_409_CONFLICT, 'precondition_failed')

        self.assertTrue(portal.delete(f"/api/mobile/appointments/{appt['id']}").data['ok'])
        self.assertEqual(MobileAppointment.objects.filter(user=ravi).count(), 1)

    def test_appointments_are_private_to_their_owner(self):
        ravi = User.objects.create_user(username='ravi', password='ravipass', role=User.ROLE_PATIENT)
        other = User.objects.create_user(username='meena', password='meenapass', role=User.ROLE_PATIENT)
        appt = self.authenticate(ravi).post('/api/mobile/appointments', self.booking(), format='json').data
        url = f"/api/mobile/appointments/{appt['appointment']['id']}"

        self.assertError(self.authenticate(other).get(url), status.HTTP_404_NOT_FOUND, 'not_found')
        self.assertError(self.authenticate(other).delete(url), status.HTTP_404_NOT_FOUND, 'not_found')
        self.assertEqual(self.authenticate(self.desk).get('/api/mobile/appointments').status_code,
                         status.HTTP_403_FORBIDDEN)

    def test_booking_requires_core_fields(self):
        ravi = User.objects.create_user(username='ravi', password='ravipass', role=User.ROLE_PATIENT)
        body = self.booking()
        del body['center']
        r = self.authenticate(ravi).post('/api/mobile/appointments', body, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(MobileAppointment.objects.exists())
